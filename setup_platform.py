"""
Prepare a working directory for the video hosting API.

Creates the data, upload and temp directories, an empty metadata document,
and a .env.example template listing the configurable settings.

Usage:
    python setup_platform.py [--force-env]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from app.core.config import ensure_directories, settings

logger = logging.getLogger("setup_platform")

ENV_TEMPLATE = """# Server Configuration
HOST=0.0.0.0
PORT=3000
LOG_LEVEL=INFO

# Metadata document
DATA_DIR=./data
VIDEOS_DB_FILE=./data/videos-db.json

# Storage backend: local, s3 or gcs (use gcs for Firebase Storage buckets)
STORAGE_BACKEND=local
STORAGE_LOCAL_PATH=./uploads

# S3
# STORAGE_S3_BUCKET=your-bucket-name
# STORAGE_S3_REGION=us-east-1
# AWS_ACCESS_KEY_ID=
# AWS_SECRET_ACCESS_KEY=

# Google Cloud Storage / Firebase Storage
# STORAGE_GCS_BUCKET=your-bucket-name
# STORAGE_GCS_PROJECT=your-project-id
# STORAGE_GCS_CREDENTIALS_FILE=./config/service-account-key.json

# Upload limits
MAX_FILE_SIZE_MB=100
SIGNED_URL_TTL_SECONDS=900
"""


def create_database(path: Path) -> bool:
    """Write an empty metadata document unless one exists."""
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"videos": []}, indent=2), encoding="utf-8")
    return True


def create_env_template(path: Path, force: bool = False) -> bool:
    if path.exists() and not force:
        return False
    path.write_text(ENV_TEMPLATE, encoding="utf-8")
    return True


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Set up the video hosting API working directory")
    parser.add_argument(
        "--env-file", default=".env.example", help="Where to write the environment template"
    )
    parser.add_argument(
        "--force-env", action="store_true", help="Overwrite an existing environment template"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    try:
        ensure_directories(settings)

        db_path = Path(settings.VIDEOS_DB_FILE)
        if create_database(db_path):
            logger.info(f"Created videos database file: {db_path}")

        if create_env_template(Path(args.env_file), force=args.force_env):
            logger.info(f"Created environment variables template: {args.env_file}")
            logger.info("Copy it to .env and update it with your settings")
    except OSError as e:
        logger.error(f"Setup failed: {e}")
        return 1

    logger.info("Setup completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
