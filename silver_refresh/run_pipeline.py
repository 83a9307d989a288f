import os
import sys
import sqlite3
import argparse
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import pandas as pd

from silver_refresh import config
from silver_refresh.bronze import BronzeLoadError, load_bronze
from silver_refresh.export import export_silver_layer, upload_silver_exports
from silver_refresh.quality import run_quality_checks
from silver_refresh.run_log import RunLogger
from silver_refresh.silver import TableRefresher, create_silver_tables
from silver_refresh.transforms import REFRESH_PLAN
from utils.logger import setup_logger

logger = setup_logger("ETL_Pipeline", log_dir=config.LOG_DIR)

SUCCEEDED = "succeeded"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass
class TableResult:
    table: str
    status: str = SKIPPED
    rows: int = 0
    seconds: float = 0.0
    error: Optional[str] = None


@dataclass
class RefreshReport:
    """Outcome of one full refresh, table by table."""
    tables: List[TableResult] = field(default_factory=list)
    seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return all(result.status == SUCCEEDED for result in self.tables)

    @property
    def failed(self) -> List[str]:
        return [result.table for result in self.tables if result.status == FAILED]

    def result(self, table: str) -> TableResult:
        for result in self.tables:
            if result.table == table:
                return result
        raise KeyError(table)


def describe_error(error: Exception) -> str:
    """Message, code and severity of a failure, as one log line."""
    # pandas wraps the sqlite3 error it hit
    source = error if isinstance(error, sqlite3.Error) else (error.__cause__ or error)
    code = getattr(source, "sqlite_errorname", None) or type(source).__name__
    number = getattr(source, "sqlite_errorcode", None)
    if number is not None:
        code = f"{code} ({number})"
    return f"Error Message: {error} | Error Code: {code} | Severity: ERROR"


def run_full_refresh(bronze_db: Optional[str] = None, silver_db: Optional[str] = None,
                     now: Optional[datetime] = None) -> RefreshReport:
    """
    Rebuild every silver table from its bronze counterpart.

    Tables are loaded one after another. The first failure stops the batch:
    the failing table is rolled back to its previous contents, the error is
    logged, and the remaining tables are reported as skipped. Nothing is
    raised to the caller; inspect the returned report instead.

    Args:
        bronze_db: Path to the bronze SQLite database file
        silver_db: Path to the silver SQLite database file
        now: Processing time used by time-dependent rules (default: now)

    Returns:
        RefreshReport with one entry per silver table
    """
    bronze_db = bronze_db or config.BRONZE_DB
    silver_db = silver_db or config.SILVER_DB
    now = now or datetime.now()

    report = RefreshReport(tables=[TableResult(table=target) for _, target, _ in REFRESH_PLAN])
    run_log = RunLogger(logger, layer="Silver")
    bronze_conn = None
    silver_conn = None
    current = None

    run_log.start_batch()
    try:
        silver_dir = os.path.dirname(silver_db)
        if silver_dir:
            os.makedirs(silver_dir, exist_ok=True)

        # Bronze is only ever read
        bronze_conn = sqlite3.connect(f"file:{bronze_db}?mode=ro", uri=True)
        silver_conn = sqlite3.connect(silver_db)
        create_silver_tables(silver_conn.cursor())
        silver_conn.commit()
        refresher = TableRefresher(silver_conn)

        for source, target, transform in REFRESH_PLAN:
            current = report.result(target)
            with run_log.track(target):
                bronze_df = pd.read_sql(f"SELECT * FROM {source}", bronze_conn)
                logger.info(f">> Inserting Data Into: {target}")
                silver_df = transform(bronze_df, now=now)
                current.rows = refresher.refresh(target, silver_df)
                run_log.end_table(target, current.rows)
            current.seconds = run_log.table_seconds(target)
            current.status = SUCCEEDED
            current = None

    except Exception as e:
        logger.error("ERROR OCCURRED DURING LOADING SILVER LAYER")
        logger.error(describe_error(e))
        if current is not None:
            current.status = FAILED
            current.error = str(e)
            current.seconds = run_log.table_seconds(current.table)

    finally:
        if bronze_conn:
            bronze_conn.close()
        if silver_conn:
            silver_conn.close()

    run_log.end_batch()
    report.seconds = run_log.total_seconds()
    return report


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point for the silver refresh."""
    parser = argparse.ArgumentParser(description='Rebuild the silver layer from the bronze layer')
    parser.add_argument('--bronze-db', type=str, default=config.BRONZE_DB, help='Path to bronze SQLite database')
    parser.add_argument('--silver-db', type=str, default=config.SILVER_DB, help='Path to silver SQLite database')
    parser.add_argument('--load-bronze', type=str, metavar='DIR',
                        help='Reload bronze from the CSV files in DIR before refreshing silver')
    parser.add_argument('--check', action='store_true', help='Run silver quality checks after the refresh')
    parser.add_argument('--export-dir', type=str, help='Export silver tables to Parquet in this directory')
    parser.add_argument('--upload', action='store_true', help='Upload exported Parquet files to S3')

    args = parser.parse_args(argv)

    if args.load_bronze:
        try:
            load_bronze(args.load_bronze, args.bronze_db)
        except (BronzeLoadError, sqlite3.Error) as e:
            logger.error(f"Bronze layer ingestion failed: {e}")
            return 1

    report = run_full_refresh(bronze_db=args.bronze_db, silver_db=args.silver_db)

    print("Silver refresh completed:" if report.ok else "Silver refresh failed:")
    for result in report.tables:
        line = f"{result.table}: {result.status}, {result.rows} rows, {result.seconds:.3f}s"
        if result.error:
            line += f" ({result.error})"
        print(line)

    if not report.ok:
        return 1

    if args.check:
        run_quality_checks(args.silver_db)

    if args.export_dir or args.upload:
        exported = export_silver_layer(args.silver_db, args.export_dir)
        if args.upload:
            uploads = upload_silver_exports(exported)
            if not all(uploads.values()):
                return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
