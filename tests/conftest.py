"""
Pytest configuration and shared fixtures
"""
import os
import sqlite3
import tempfile

# Keep test runs from writing into the project's logs/ folder
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="silver_refresh_logs_"))

import pandas as pd
import pytest

from silver_refresh.bronze import create_bronze_tables
from silver_refresh.silver import create_silver_tables


@pytest.fixture
def bronze_frames():
    """Small bronze tables covering the dirty cases each rule handles."""
    return {
        "crm_cust_info": pd.DataFrame({
            "cst_id": [1, 1, None, 2, 3],
            "cst_key": ["AW00000001", "AW00000001", "PO25", "AW00000002", "AW00000003"],
            "cst_firstname": [" Jon ", "Jon", None, "Ann", "  Eve"],
            "cst_lastname": ["Yang ", "Yang", None, "Lee", "Park"],
            "cst_marital_status": ["m", "S", None, " s", "M"],
            "cst_gndr": ["m", "F", None, "x", None],
            "cst_create_date": ["2021-01-01", "2022-01-01", None, "2021-05-05", "2020-02-02"],
        }),
        "crm_prd_info": pd.DataFrame({
            "prd_id": [210, 211, 212, 300],
            "prd_key": ["CO-RF-FR-R92B-58", "CO-RF-FR-R92B-58", "CO-RF-FR-R92B-58", "AB-CD12-HL-U509"],
            "prd_nm": ["HL Road Frame", "HL Road Frame", "HL Road Frame", "Helmet"],
            "prd_cost": [None, 12, 14, 35],
            "prd_line": ["R ", "r", "R", None],
            "prd_start_dt": ["2003-07-01", "2007-07-01", "2008-07-01", "2011-07-01"],
            "prd_end_dt": [None, "2007-12-28", None, None],
        }),
        "crm_sales_details": pd.DataFrame({
            "sls_ord_num": ["SO1", "SO2", "SO3"],
            "sls_prd_key": ["FR-R92B-58", "FR-R92B-58", "2-HL-U509"],
            "sls_cust_id": [1, 2, 3],
            "sls_order_dt": [20101229, 0, 201012],
            "sls_ship_dt": [20110105, 20110105, 20110105],
            "sls_due_dt": [20110110, 20110110, 20110110],
            "sls_sales": [0, 50, 35],
            "sls_quantity": [5, 5, 1],
            "sls_price": [10, 0, 35],
        }),
        "erp_cust_az12": pd.DataFrame({
            "cid": ["NASAW00000001", "AW00000002", "AW00000003"],
            "bdate": ["1971-10-06", "2050-01-01", "1980-03-03"],
            "gen": [" f", "MALE", None],
        }),
        "erp_loc_a101": pd.DataFrame({
            "cid": ["AW-00000001", "AW-00000002", "AW-00000003"],
            "cntry": ["DE", " USA ", ""],
        }),
        "erp_px_cat_g1v2": pd.DataFrame({
            "id": ["CO_RF", "AB_CD"],
            "cat": ["Components", "Accessories"],
            "subcat": ["Road Frames", "Helmets"],
            "maintenance": ["Yes", "No"],
        }),
    }


@pytest.fixture
def bronze_db(tmp_path, bronze_frames):
    """A bronze SQLite file loaded with bronze_frames."""
    db_file = str(tmp_path / "bronze_raw.db")
    conn = sqlite3.connect(db_file)
    create_bronze_tables(conn.cursor())
    conn.commit()
    for table, df in bronze_frames.items():
        df.to_sql(table, conn, if_exists="append", index=False)
    conn.commit()
    conn.close()
    return db_file


@pytest.fixture
def silver_db(tmp_path):
    return str(tmp_path / "silver" / "silver_raw.db")


@pytest.fixture
def silver_conn(tmp_path):
    """An open connection to an empty silver database."""
    conn = sqlite3.connect(str(tmp_path / "silver_conn.db"))
    create_silver_tables(conn.cursor())
    conn.commit()
    yield conn
    conn.close()


@pytest.fixture
def read_table():
    """Read a whole table from a SQLite file into a DataFrame."""
    def _read(db_file: str, table: str) -> pd.DataFrame:
        conn = sqlite3.connect(db_file)
        try:
            return pd.read_sql(f"SELECT * FROM {table}", conn)
        finally:
            conn.close()
    return _read
