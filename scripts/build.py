#!/usr/bin/env python3
"""
Build script for the customer Lambda deployment package
"""
import shutil
import subprocess
import sys
import zipfile
from pathlib import Path

PACKAGE_NAME = "customer_service"


def main():
    """Main build function"""
    project_root = Path(__file__).parent.parent
    build_dir = project_root / "build"
    zip_path = build_dir / "customers.zip"

    build_dir.mkdir(exist_ok=True)

    temp_dir = build_dir / "temp_customers"
    if temp_dir.exists():
        shutil.rmtree(temp_dir)
    temp_dir.mkdir()

    # Install the project and its runtime dependencies into the package root
    print("Installing dependencies...")
    subprocess.run([
        sys.executable, "-m", "pip", "install",
        str(project_root),
        "-t", str(temp_dir),
    ], check=True)

    print("Creating customers.zip...")
    with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as zipf:
        for file_path in temp_dir.rglob("*"):
            if file_path.is_file() and "__pycache__" not in file_path.parts:
                zipf.write(file_path, file_path.relative_to(temp_dir))

    shutil.rmtree(temp_dir)

    print(f"customers.zip created ({zip_path.stat().st_size} bytes)")
    print(f"Handler: {PACKAGE_NAME}.handlers.customers_handler.lambda_handler")


if __name__ == "__main__":
    main()
