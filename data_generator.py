import pandas as pd
import numpy as np
import os
import argparse
from datetime import datetime, timedelta
from typing import Dict

CATEGORIES = [
    ("AC_BR", "Accessories", "Bike Racks", "Yes"),
    ("AC_HE", "Accessories", "Helmets", "Yes"),
    ("BI_MB", "Bikes", "Mountain Bikes", "Yes"),
    ("BI_RB", "Bikes", "Road Bikes", "Yes"),
    ("BI_TB", "Bikes", "Touring Bikes", "Yes"),
    ("CL_JE", "Clothing", "Jerseys", "No"),
]
COUNTRY_CODES = ["DE", "US", "USA", "Germany", "United States", "France", "Australia", " ", ""]
MARITAL_CODES = ["S", "M", "s ", " m", None]
GENDER_CODES = ["M", "F", "f", " m ", None]
ERP_GENDER_CODES = ["Male", "Female", "M", "F", " female", "", None]
LINE_CODES = ["M ", "R ", "S ", "T ", None]


def generate_customers(rng: np.random.Generator, num_customers: int) -> pd.DataFrame:
    """
    CRM customers, with re-registered ids, padded names and raw codes.
    """
    records = []
    start = datetime(2025, 1, 1)
    for i in range(num_customers):
        cst_id = 11000 + i
        record = {
            "cst_id": cst_id,
            "cst_key": f"AW{cst_id:08d}",
            "cst_firstname": f"  First{i}" if i % 7 == 0 else f"First{i}",
            "cst_lastname": f"Last{i} " if i % 5 == 0 else f"Last{i}",
            "cst_marital_status": rng.choice(MARITAL_CODES),
            "cst_gndr": rng.choice(GENDER_CODES),
            "cst_create_date": (start + timedelta(days=int(rng.integers(0, 200)))).strftime("%Y-%m-%d"),
        }
        records.append(record)
        # Some customers were captured again later
        if i % 10 == 0:
            later = dict(record)
            later["cst_create_date"] = (start + timedelta(days=300)).strftime("%Y-%m-%d")
            later["cst_firstname"] = f"First{i}"
            records.append(later)
    # Rows without an id are junk from the CRM export
    records.append({"cst_id": None, "cst_key": "PO25", "cst_firstname": None, "cst_lastname": None,
                    "cst_marital_status": None, "cst_gndr": None, "cst_create_date": None})
    df = pd.DataFrame(records, columns=["cst_id", "cst_key", "cst_firstname", "cst_lastname",
                                        "cst_marital_status", "cst_gndr", "cst_create_date"])
    return df.astype({"cst_id": "Int64"})


def generate_products(rng: np.random.Generator, num_products: int) -> pd.DataFrame:
    """
    CRM products; every product has one to three versions with
    overlapping, unreliable end dates.
    """
    records = []
    prd_id = 200
    for i in range(num_products):
        cat_id = CATEGORIES[i % len(CATEGORIES)][0].replace("_", "-")
        prd_key = f"{cat_id}-P{i:03d}-{int(rng.integers(40, 60))}"
        start = datetime(2011, 7, 1)
        for version in range(int(rng.integers(1, 4))):
            version_start = start + timedelta(days=365 * version)
            records.append({
                "prd_id": prd_id,
                "prd_key": prd_key,
                "prd_nm": f"Product {i} v{version + 1}",
                "prd_cost": None if rng.random() < 0.05 else int(rng.integers(1, 2000)),
                "prd_line": rng.choice(LINE_CODES),
                "prd_start_dt": version_start.strftime("%Y-%m-%d"),
                "prd_end_dt": (version_start - timedelta(days=30)).strftime("%Y-%m-%d"),
            })
            prd_id += 1
    return pd.DataFrame(records).astype({"prd_cost": "Int64"})


def _date_code(day: datetime) -> int:
    return int(day.strftime("%Y%m%d"))


def generate_sales(rng: np.random.Generator, customers: pd.DataFrame, products: pd.DataFrame,
                   num_orders: int) -> pd.DataFrame:
    """
    Sales lines with broken date codes and inconsistent money fields.
    """
    cust_ids = customers["cst_id"].dropna().astype(int).unique()
    prd_keys = products["prd_key"].str[6:].unique()
    records = []
    for i in range(num_orders):
        order_day = datetime(2012, 1, 1) + timedelta(days=int(rng.integers(0, 900)))
        quantity = int(rng.integers(1, 4))
        price = int(rng.integers(5, 3000))
        sales = quantity * price
        order_dt = _date_code(order_day)

        roll = rng.random()
        if roll < 0.03:
            sales = None
        elif roll < 0.06:
            sales = -sales
        elif roll < 0.09:
            sales = sales + 1
        elif roll < 0.12:
            price = None
        elif roll < 0.15:
            price = -price
        elif roll < 0.18:
            order_dt = 0
        elif roll < 0.21:
            order_dt = int(str(order_dt)[:5])

        records.append({
            "sls_ord_num": f"SO{43697 + i}",
            "sls_prd_key": rng.choice(prd_keys),
            "sls_cust_id": int(rng.choice(cust_ids)),
            "sls_order_dt": order_dt,
            "sls_ship_dt": _date_code(order_day + timedelta(days=7)),
            "sls_due_dt": _date_code(order_day + timedelta(days=12)),
            "sls_sales": sales,
            "sls_quantity": quantity,
            "sls_price": price,
        })
    return pd.DataFrame(records).astype({"sls_sales": "Int64", "sls_price": "Int64"})


def generate_erp_customers(rng: np.random.Generator, customers: pd.DataFrame) -> pd.DataFrame:
    records = []
    for cst_key in customers["cst_key"].dropna().unique():
        if not cst_key.startswith("AW"):
            continue
        birth = datetime(1940, 1, 1) + timedelta(days=int(rng.integers(0, 365 * 90)))
        records.append({
            "cid": f"NAS{cst_key}" if rng.random() < 0.5 else cst_key,
            "bdate": birth.strftime("%Y-%m-%d"),
            "gen": rng.choice(ERP_GENDER_CODES),
        })
    return pd.DataFrame(records, columns=["cid", "bdate", "gen"])


def generate_erp_locations(rng: np.random.Generator, customers: pd.DataFrame) -> pd.DataFrame:
    records = []
    for cst_key in customers["cst_key"].dropna().unique():
        if not cst_key.startswith("AW"):
            continue
        records.append({"cid": f"{cst_key[:2]}-{cst_key[2:]}", "cntry": rng.choice(COUNTRY_CODES)})
    return pd.DataFrame(records, columns=["cid", "cntry"])


def generate_erp_categories() -> pd.DataFrame:
    return pd.DataFrame(CATEGORIES, columns=["id", "cat", "subcat", "maintenance"])


def generate_source_files(output_dir: str, num_customers: int = 200, num_products: int = 40,
                          num_orders: int = 1000, seed: int = 42) -> Dict[str, str]:
    """
    Write the six CRM/ERP source files the bronze loader expects.

    Args:
        output_dir: Datasets folder; source_crm/ and source_erp/ are created in it
        num_customers: Number of distinct CRM customers
        num_products: Number of distinct products
        num_orders: Number of sales lines
        seed: Random seed, so repeated runs write identical files

    Returns:
        Mapping of source file name to written path
    """
    rng = np.random.default_rng(seed)
    customers = generate_customers(rng, num_customers)
    products = generate_products(rng, num_products)
    frames = {
        os.path.join("source_crm", "cust_info.csv"): customers,
        os.path.join("source_crm", "prd_info.csv"): products,
        os.path.join("source_crm", "sales_details.csv"): generate_sales(rng, customers, products, num_orders),
        os.path.join("source_erp", "CUST_AZ12.csv"): generate_erp_customers(rng, customers),
        os.path.join("source_erp", "LOC_A101.csv"): generate_erp_locations(rng, customers),
        os.path.join("source_erp", "PX_CAT_G1V2.csv"): generate_erp_categories(),
    }

    written = {}
    for relative_path, df in frames.items():
        output_file = os.path.join(output_dir, relative_path)
        os.makedirs(os.path.dirname(output_file), exist_ok=True)
        df.to_csv(output_file, index=False)
        written[os.path.basename(relative_path)] = output_file
    return written


if __name__ == "__main__":
    BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__)))
    parser = argparse.ArgumentParser(description='Generate synthetic CRM/ERP source files')
    parser.add_argument('--output-dir', type=str, default=os.path.join(BASE_DIR, "data", "datasets"))
    parser.add_argument('--customers', type=int, default=200)
    parser.add_argument('--products', type=int, default=40)
    parser.add_argument('--orders', type=int, default=1000)
    parser.add_argument('--seed', type=int, default=42)
    args = parser.parse_args()

    written = generate_source_files(args.output_dir, args.customers, args.products, args.orders, args.seed)
    for name, path in written.items():
        print(f"Generated CSV file at: {path}")
