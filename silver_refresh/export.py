import os
import sqlite3
from datetime import datetime
from typing import Dict, Iterable, Optional

import boto3
import pandas as pd
from botocore.exceptions import BotoCoreError, ClientError

from silver_refresh import config
from silver_refresh.silver import SILVER_TABLES
from utils.logger import setup_logger

logger = setup_logger("SilverExport", log_dir=config.LOG_DIR)


def export_table_to_parquet(db_file: str, table_name: str, output_file: str) -> int:
    """
    Write one table to a Parquet file.

    Returns:
        Number of exported rows (0 means nothing was written)
    """
    conn = sqlite3.connect(db_file)
    try:
        df = pd.read_sql(f"SELECT * FROM {table_name}", conn)
    finally:
        conn.close()
    if df.empty:
        logger.warning(f"Table '{table_name}' in {db_file} is empty. No data to export.")
        return 0
    df.to_parquet(output_file, index=False)
    logger.info(f"Exported {len(df)} records from table '{table_name}' to {output_file}")
    return len(df)


def export_silver_layer(db_file: Optional[str] = None, output_dir: Optional[str] = None,
                        tables: Optional[Iterable[str]] = None) -> Dict[str, str]:
    """
    Snapshot silver tables as timestamped Parquet files.

    Args:
        db_file: Path to the silver SQLite database file
        output_dir: Directory to save the exported files
        tables: Tables to export (default: every silver table)

    Returns:
        Mapping of table name to exported file; empty tables are left out
    """
    db_file = db_file or config.SILVER_DB
    output_dir = output_dir or config.EXPORT_DIR
    os.makedirs(output_dir, exist_ok=True)

    ts = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    exported = {}
    for table in tables or SILVER_TABLES:
        output_file = os.path.join(output_dir, f"{ts}_silver_{table}.parquet")
        if export_table_to_parquet(db_file, table, output_file):
            exported[table] = output_file
    return exported


def upload_file_to_s3(local_file: str, bucket: str, s3_key: str) -> bool:
    """Upload a local file to s3://bucket/s3_key. Failures are logged, not raised."""
    s3_client = boto3.client('s3',
                             aws_access_key_id=config.AWS_ACCESS_KEY_ID,
                             aws_secret_access_key=config.AWS_SECRET_ACCESS_KEY,
                             region_name=config.AWS_REGION)
    try:
        s3_client.upload_file(local_file, bucket, s3_key)
        logger.info(f"Uploaded {local_file} to s3://{bucket}/{s3_key}")
        return True
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to upload {local_file} to s3://{bucket}/{s3_key}: {e}")
        return False


def upload_silver_exports(exported: Dict[str, str], bucket: Optional[str] = None) -> Dict[str, bool]:
    bucket = bucket or config.SILVER_BUCKET
    return {
        table: upload_file_to_s3(path, bucket, os.path.basename(path))
        for table, path in exported.items()
    }
