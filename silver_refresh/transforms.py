"""
Row rules that turn bronze CRM/ERP tables into their silver shape.

Every transform is a pure function with the same call signature,
``transform(df, now=None)``: it takes the bronze DataFrame and returns a new
DataFrame holding exactly the silver columns, leaving the input untouched.
``now`` is the processing time; only rules that depend on the clock read it.
Dates come out as ``datetime.date`` objects (or None).
"""
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

N_A = "n/a"

MARITAL_STATUS = {"S": "Single", "M": "Married"}
CUSTOMER_GENDER = {"F": "Female", "M": "Male"}
PRODUCT_LINE = {"M": "Mountain", "R": "Road", "S": "Other Sales", "T": "Touring"}
ERP_GENDER = {"F": "Female", "FEMALE": "Female", "M": "Male", "MALE": "Male"}
COUNTRY_NAMES = {"DE": "Germany", "US": "United States", "USA": "United States"}

ERP_CUSTOMER_PREFIX = "NAS"
LOCATION_CID_SEPARATOR = " "

CUSTOMER_COLUMNS = ["cst_id", "cst_key", "cst_firstname", "cst_lastname",
                    "cst_marital_status", "cst_gndr", "cst_create_date"]
PRODUCT_COLUMNS = ["prd_id", "cat_id", "prd_key", "prd_nm", "prd_cost",
                   "prd_line", "prd_start_dt", "prd_end_dt"]
SALES_COLUMNS = ["sls_ord_num", "sls_prd_key", "sls_cust_id", "sls_order_dt",
                 "sls_ship_dt", "sls_due_dt", "sls_sales", "sls_quantity", "sls_price"]
SALES_DATE_COLUMNS = ["sls_order_dt", "sls_ship_dt", "sls_due_dt"]
ERP_CUSTOMER_COLUMNS = ["cid", "bdate", "gen"]
ERP_LOCATION_COLUMNS = ["cid", "cntry"]
ERP_CATEGORY_COLUMNS = ["id", "cat", "subcat", "maintenance"]


def _normalize_codes(series: pd.Series) -> pd.Series:
    """Trim and upper-case a code column; NULLs become empty strings."""
    return series.where(series.notna(), "").astype(str).str.strip().str.upper()


def map_codes(series: pd.Series, mapping: Dict[str, str]) -> pd.Series:
    """Map trimmed, case-insensitive codes onto labels, anything else to 'n/a'."""
    return _normalize_codes(series).map(mapping).fillna(N_A).astype(object)


def _strip(series: pd.Series) -> pd.Series:
    return series.map(lambda value: value.strip() if isinstance(value, str) else value)


def _to_dates(series: pd.Series) -> pd.Series:
    """Convert a datetime64 series to date objects, NaT to None."""
    return pd.Series(
        [value.date() if not pd.isna(value) else None for value in series],
        index=series.index,
        dtype=object,
    )


def _as_int(series: pd.Series) -> pd.Series:
    """Truncate toward zero into a nullable integer column."""
    return np.trunc(pd.to_numeric(series, errors="coerce")).astype("Int64")


def parse_date_code(value: Any) -> Optional[date]:
    """
    Parse an integer date code (YYYYMMDD) from the sales feed.

    0, NULL, anything that is not exactly 8 digits long, and codes that are
    not a real calendar date all come back as None.
    """
    if value is None or pd.isna(value):
        return None
    try:
        code = int(value)
    except (TypeError, ValueError):
        return None
    text = str(code)
    if code == 0 or len(text) != 8:
        return None
    try:
        return datetime.strptime(text, "%Y%m%d").date()
    except ValueError:
        return None


def transform_customers(df: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
    """
    Clean CRM customer rows.

    Keeps the most recent record per cst_id (rows without an id are
    dropped), trims names, and spells out marital status and gender.

    Args:
        df: bronze crm_cust_info rows

    Returns:
        DataFrame with one row per cst_id, ordered by cst_id
    """
    customers = df[df["cst_id"].notna()].copy()
    customers["_created"] = pd.to_datetime(customers["cst_create_date"], errors="coerce")

    # Latest create date wins; rows with no date rank last
    customers = customers.sort_values(
        "_created", ascending=False, na_position="last", kind="mergesort"
    )
    customers = customers.drop_duplicates(subset="cst_id", keep="first")
    customers = customers.sort_values("cst_id", kind="mergesort")

    return pd.DataFrame({
        "cst_id": customers["cst_id"].astype("int64"),
        "cst_key": customers["cst_key"],
        "cst_firstname": _strip(customers["cst_firstname"]),
        "cst_lastname": _strip(customers["cst_lastname"]),
        "cst_marital_status": map_codes(customers["cst_marital_status"], MARITAL_STATUS),
        "cst_gndr": map_codes(customers["cst_gndr"], CUSTOMER_GENDER),
        "cst_create_date": _to_dates(customers["_created"]),
    }, columns=CUSTOMER_COLUMNS).reset_index(drop=True)


def transform_products(df: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
    """
    Split the composite product key and rebuild validity ranges.

    The first five characters of the raw key are the category id (with '-'
    turned into '_'); everything after the sixth character is the product
    key. Each version of a product ends the day before the next one starts.
    """
    raw_key = df["prd_key"]
    products = pd.DataFrame({
        "prd_id": pd.to_numeric(df["prd_id"], errors="coerce").astype("Int64"),
        "cat_id": raw_key.str[:5].str.replace("-", "_", regex=False),
        "prd_key": raw_key.str[6:],
        "prd_nm": df["prd_nm"],
        "prd_cost": pd.to_numeric(df["prd_cost"], errors="coerce").fillna(0),
        "prd_line": map_codes(df["prd_line"], PRODUCT_LINE),
        "_start": pd.to_datetime(df["prd_start_dt"], errors="coerce").dt.normalize(),
    })

    products = products.sort_values(
        ["prd_key", "_start"], na_position="first", kind="mergesort"
    )
    next_start = products.groupby("prd_key", dropna=False, sort=False)["_start"].shift(-1)
    products["prd_start_dt"] = _to_dates(products["_start"])
    products["prd_end_dt"] = _to_dates(next_start - timedelta(days=1))

    return products[PRODUCT_COLUMNS].reset_index(drop=True)


def transform_sales(df: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
    """
    Validate sales order lines.

    Date codes are parsed (bad ones become NULL). Sales is rebuilt as
    quantity * |price| whenever it is missing, non-positive or inconsistent.
    A missing or non-positive price is derived from the sales value as it
    arrived from bronze, not from the rebuilt one.
    """
    sales = pd.to_numeric(df["sls_sales"], errors="coerce")
    quantity = pd.to_numeric(df["sls_quantity"], errors="coerce")
    price = pd.to_numeric(df["sls_price"], errors="coerce")

    expected = quantity * price.abs()
    rebuild_sales = sales.isna() | (sales <= 0) | (expected.notna() & (sales != expected))
    rebuild_price = price.isna() | (price <= 0)

    derived_price = sales / quantity.where(quantity != 0)

    result = pd.DataFrame({
        "sls_ord_num": df["sls_ord_num"],
        "sls_prd_key": df["sls_prd_key"],
        "sls_cust_id": pd.to_numeric(df["sls_cust_id"], errors="coerce").astype("Int64"),
    })
    for column in SALES_DATE_COLUMNS:
        result[column] = df[column].map(parse_date_code).astype(object)
    result["sls_sales"] = _as_int(sales.where(~rebuild_sales, expected))
    result["sls_quantity"] = _as_int(quantity)
    result["sls_price"] = _as_int(price.where(~rebuild_price, derived_price))

    return result[SALES_COLUMNS].reset_index(drop=True)


def transform_erp_customers(df: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
    """
    Clean ERP customer demographics.

    Args:
        df: bronze erp_cust_az12 rows
        now: processing time; birthdates after it are nulled (default: now)

    Returns:
        DataFrame with cid, bdate, gen
    """
    if now is None:
        now = datetime.now()
    cutoff = pd.Timestamp(now)
    # Birthdates are naive; compare in local wall-clock time
    if cutoff.tzinfo is not None:
        cutoff = cutoff.tz_localize(None)

    cid = df["cid"]
    prefixed = cid.str.startswith(ERP_CUSTOMER_PREFIX, na=False)
    birthdate = pd.to_datetime(df["bdate"], errors="coerce")

    return pd.DataFrame({
        "cid": cid.where(~prefixed, cid.str[len(ERP_CUSTOMER_PREFIX):]),
        "bdate": _to_dates(birthdate.where(~(birthdate > cutoff))),
        "gen": map_codes(df["gen"], ERP_GENDER),
    }, columns=ERP_CUSTOMER_COLUMNS).reset_index(drop=True)


def normalize_country(value: Any) -> str:
    if value is None or pd.isna(value):
        return N_A
    country = str(value).strip()
    if not country:
        return N_A
    return COUNTRY_NAMES.get(country, country)


def transform_erp_locations(df: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
    return pd.DataFrame({
        "cid": df["cid"].str.replace("-", LOCATION_CID_SEPARATOR, regex=False),
        "cntry": df["cntry"].map(normalize_country).astype(object),
    }, columns=ERP_LOCATION_COLUMNS).reset_index(drop=True)


def transform_erp_categories(df: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
    # Already clean at the source
    return df[ERP_CATEGORY_COLUMNS].copy().reset_index(drop=True)


# (bronze source table, silver target table, transform) in load order
REFRESH_PLAN: List[Tuple[str, str, Callable[..., pd.DataFrame]]] = [
    ("crm_cust_info", "crm_cust_info", transform_customers),
    ("crm_prd_info", "crm_prd_info", transform_products),
    ("crm_sales_details", "crm_sales_details", transform_sales),
    ("erp_cust_az12", "erp_cust_az12", transform_erp_customers),
    ("erp_loc_a101", "erp_loc_a101", transform_erp_locations),
    ("erp_px_cat_g1v2", "erp_px_cat_g1v2", transform_erp_categories),
]
