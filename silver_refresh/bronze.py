import sqlite3
import csv
import os
from typing import Dict, List, Optional

from silver_refresh import config
from silver_refresh.run_log import RunLogger
from utils.logger import setup_logger

logger = setup_logger("BronzeLayer", log_dir=config.LOG_DIR)


class BronzeLoadError(Exception):
    """Raised when a source file can't be loaded into the bronze layer."""


BRONZE_TABLES = {
    "crm_cust_info": """
        CREATE TABLE IF NOT EXISTS crm_cust_info (
            cst_id INTEGER,
            cst_key TEXT,
            cst_firstname TEXT,
            cst_lastname TEXT,
            cst_marital_status TEXT,
            cst_gndr TEXT,
            cst_create_date DATE
        )
    """,
    "crm_prd_info": """
        CREATE TABLE IF NOT EXISTS crm_prd_info (
            prd_id INTEGER,
            prd_key TEXT,
            prd_nm TEXT,
            prd_cost INTEGER,
            prd_line TEXT,
            prd_start_dt DATETIME,
            prd_end_dt DATETIME
        )
    """,
    "crm_sales_details": """
        CREATE TABLE IF NOT EXISTS crm_sales_details (
            sls_ord_num TEXT,
            sls_prd_key TEXT,
            sls_cust_id INTEGER,
            sls_order_dt INTEGER,
            sls_ship_dt INTEGER,
            sls_due_dt INTEGER,
            sls_sales INTEGER,
            sls_quantity INTEGER,
            sls_price INTEGER
        )
    """,
    "erp_cust_az12": """
        CREATE TABLE IF NOT EXISTS erp_cust_az12 (
            cid TEXT,
            bdate DATE,
            gen TEXT
        )
    """,
    "erp_loc_a101": """
        CREATE TABLE IF NOT EXISTS erp_loc_a101 (
            cid TEXT,
            cntry TEXT
        )
    """,
    "erp_px_cat_g1v2": """
        CREATE TABLE IF NOT EXISTS erp_px_cat_g1v2 (
            id TEXT,
            cat TEXT,
            subcat TEXT,
            maintenance TEXT
        )
    """,
}

# Source file for each bronze table, relative to the datasets folder
SOURCE_FILES = {
    "crm_cust_info": os.path.join("source_crm", "cust_info.csv"),
    "crm_prd_info": os.path.join("source_crm", "prd_info.csv"),
    "crm_sales_details": os.path.join("source_crm", "sales_details.csv"),
    "erp_cust_az12": os.path.join("source_erp", "CUST_AZ12.csv"),
    "erp_loc_a101": os.path.join("source_erp", "LOC_A101.csv"),
    "erp_px_cat_g1v2": os.path.join("source_erp", "PX_CAT_G1V2.csv"),
}


def create_bronze_tables(cursor):
    """
    Create every bronze table that doesn't already exist.
    """
    for ddl in BRONZE_TABLES.values():
        cursor.execute(ddl)


def bronze_columns(cursor, table: str) -> List[str]:
    cursor.execute(f"PRAGMA table_info({table})")
    return [row[1] for row in cursor.fetchall()]


def validate_csv_structure(csv_file: str, required_columns: list) -> bool:
    """
    Validate the structure of the CSV file.

    Args:
        csv_file: Path to the CSV file
        required_columns: List of required column names

    Returns:
        True if the CSV structure is valid, False otherwise
    """
    try:
        with open(csv_file, newline='', encoding='utf-8') as f:
            reader = csv.DictReader(f)
            csv_columns = reader.fieldnames
            if not csv_columns:
                logger.error(f"CSV file {csv_file} is empty or has no headers.")
                return False
            missing_columns = [col for col in required_columns if col not in csv_columns]
            if missing_columns:
                logger.error(f"CSV file {csv_file} is missing required columns: {missing_columns}")
                return False
        return True
    except OSError as e:
        logger.error(f"Error validating CSV structure: {e}")
        return False


def read_source_rows(csv_file: str, columns: List[str]) -> List[tuple]:
    """
    Read a source CSV into insertable tuples. Blank cells become NULL;
    bronze keeps every other value exactly as delivered.
    """
    rows = []
    with open(csv_file, newline='', encoding='utf-8') as f:
        for row in csv.DictReader(f):
            rows.append(tuple(
                row[col] if row[col] is not None and row[col].strip() != '' else None
                for col in columns
            ))
    return rows


def load_table(conn: sqlite3.Connection, table: str, csv_file: str) -> int:
    """
    Truncate a bronze table and bulk insert the rows of its source file.

    Returns:
        Number of rows loaded
    """
    cursor = conn.cursor()
    columns = bronze_columns(cursor, table)
    if not os.path.exists(csv_file):
        raise BronzeLoadError(f"Source file not found for {table}: {csv_file}")
    if not validate_csv_structure(csv_file, columns):
        raise BronzeLoadError(f"Source file for {table} has an invalid header: {csv_file}")

    rows = read_source_rows(csv_file, columns)
    placeholders = ', '.join('?' for _ in columns)
    try:
        conn.execute("BEGIN TRANSACTION")
        conn.execute(f"DELETE FROM {table}")
        conn.executemany(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})", rows
        )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    return len(rows)


def load_bronze(datasets_dir: Optional[str] = None, db_file: Optional[str] = None,
                run_log: Optional[RunLogger] = None) -> Dict[str, int]:
    """
    Reload every bronze table from the CSV files in datasets_dir.

    Args:
        datasets_dir: Folder holding source_crm/ and source_erp/
        db_file: Path to the bronze SQLite database file
        run_log: Optional RunLogger to record timings on

    Returns:
        Row counts per bronze table
    """
    datasets_dir = datasets_dir or config.DATASETS_DIR
    db_file = db_file or config.BRONZE_DB
    run_log = run_log or RunLogger(logger, layer="Bronze")

    db_dir = os.path.dirname(db_file)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    counts = {}
    conn = sqlite3.connect(db_file)
    try:
        create_bronze_tables(conn.cursor())
        conn.commit()

        run_log.start_batch()
        for table, relative_path in SOURCE_FILES.items():
            csv_file = os.path.join(datasets_dir, relative_path)
            with run_log.track(table):
                logger.info(f">> Inserting Data Into: {table} from {csv_file}")
                counts[table] = load_table(conn, table, csv_file)
                run_log.end_table(table, counts[table])
        run_log.end_batch()
    finally:
        conn.close()

    logger.info(f"Successfully ingested {sum(counts.values())} records into bronze layer.")
    return counts


if __name__ == "__main__":
    logger.info(f"Ingesting data from: {config.DATASETS_DIR}")
    logger.info(f"Saving database to: {config.BRONZE_DB}")
    try:
        load_bronze()
        logger.info("Bronze layer ingestion completed successfully.")
    except (BronzeLoadError, sqlite3.Error) as e:
        logger.error(f"Bronze layer ingestion failed: {e}")
