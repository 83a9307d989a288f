import sqlite3
from datetime import date
from typing import List

import pandas as pd

from silver_refresh import config
from utils.logger import setup_logger

logger = setup_logger("SilverLayer", log_dir=config.LOG_DIR)

SILVER_TABLES = {
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
            cat_id TEXT,
            prd_key TEXT,
            prd_nm TEXT,
            prd_cost NUMERIC,
            prd_line TEXT,
            prd_start_dt DATE,
            prd_end_dt DATE
        )
    """,
    "crm_sales_details": """
        CREATE TABLE IF NOT EXISTS crm_sales_details (
            sls_ord_num TEXT,
            sls_prd_key TEXT,
            sls_cust_id INTEGER,
            sls_order_dt DATE,
            sls_ship_dt DATE,
            sls_due_dt DATE,
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


def create_silver_tables(cursor):
    """
    Create every silver table that doesn't already exist.
    """
    for ddl in SILVER_TABLES.values():
        cursor.execute(ddl)


def table_columns(conn: sqlite3.Connection, table: str) -> List[str]:
    """Column names of an existing table, in declaration order."""
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    if not rows:
        raise sqlite3.OperationalError(f"no such table: {table}")
    return [row[1] for row in rows]


def _iso_dates(series: pd.Series) -> pd.Series:
    """Write date objects as YYYY-MM-DD text; other cells are left to pandas."""
    if series.dtype != object:
        return series
    return series.map(lambda value: value.isoformat()
                      if isinstance(value, date) and not pd.isna(value) else value)


class TableRefresher:
    """
    Full-refresh loader for silver tables.

    Each call to refresh() is one transaction: the target table is emptied
    and reloaded, or left exactly as it was if anything fails.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def refresh(self, table: str, frame: pd.DataFrame) -> int:
        """
        Replace the contents of a silver table with the given rows.

        Args:
            table: Target silver table name
            frame: Transformed rows; must hold every column of the table

        Returns:
            Number of rows inserted
        """
        columns = table_columns(self.conn, table)
        missing = [col for col in columns if col not in frame.columns]
        if missing:
            raise ValueError(f"Rows for {table} are missing columns: {missing}")

        silver_df = frame[columns].apply(_iso_dates)

        try:
            self.conn.execute("BEGIN TRANSACTION")
            self.conn.execute(f"DELETE FROM {table}")
            silver_df.to_sql(table, self.conn, if_exists='append', index=False)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            logger.error(f"Refresh of {table} rolled back; previous contents kept")
            raise

        logger.debug(f"Replaced contents of {table} with {len(silver_df)} rows")
        return len(silver_df)
