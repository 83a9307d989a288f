"""
Runtime configuration for the silver refresh job.

Values come from the environment (optionally a .env file in the working
directory) and fall back to the project's data/ folder.
"""
import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Warehouse tiers, one SQLite file each
BRONZE_DB = os.environ.get("BRONZE_DB", os.path.join(BASE_DIR, "data", "bronze_raw.db"))
SILVER_DB = os.environ.get("SILVER_DB", os.path.join(BASE_DIR, "data", "silver_raw.db"))

# Source CSV drop (source_crm/ and source_erp/ sub folders)
DATASETS_DIR = os.environ.get("DATASETS_DIR", os.path.join(BASE_DIR, "data", "datasets"))

LOG_DIR = os.environ.get("LOG_DIR", os.path.join(BASE_DIR, "logs"))
EXPORT_DIR = os.environ.get("EXPORT_DIR", os.path.join(BASE_DIR, "data", "exports"))

# S3 upload of silver snapshots
SILVER_BUCKET = os.environ.get("SILVER_BUCKET", "data-warehouse-silver")
AWS_ACCESS_KEY_ID = os.environ.get("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.environ.get("AWS_SECRET_ACCESS_KEY")
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
