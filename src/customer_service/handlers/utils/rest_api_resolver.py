"""
REST API resolver utility for the customer Lambda handlers.

This module provides the configured API Gateway REST resolver shared by the
customer routes, with CORS and security response headers.
"""

from aws_lambda_powertools.event_handler import APIGatewayRestResolver, CORSConfig, Response
from aws_lambda_powertools.event_handler.middlewares import NextMiddleware

# API path constants
CUSTOMERS_PATH = '/customers'
HEALTH_PATH = '/health'

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}

cors_config = CORSConfig(
    allow_origin='*',
    max_age=600,
    allow_headers=['content-type', 'authorization', 'x-api-key'],
)


def add_security_headers(app: APIGatewayRestResolver, next_middleware: NextMiddleware) -> Response:
    """Add security headers to all route responses."""
    response = next_middleware(app)
    response.headers.update(SECURITY_HEADERS)
    return response


app = APIGatewayRestResolver(cors=cors_config)
app.use(middlewares=[add_security_headers])
