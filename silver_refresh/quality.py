import sqlite3
from typing import Dict, Optional

from silver_refresh import config
from utils.logger import setup_logger

logger = setup_logger("SilverQuality", log_dir=config.LOG_DIR)

# Each query counts the rows (or keys) breaking one expectation on the silver tier
QUALITY_CHECKS = {
    "crm_cust_info.duplicate_or_null_id": """
        SELECT COUNT(*) FROM (
            SELECT cst_id FROM crm_cust_info
            GROUP BY cst_id HAVING COUNT(*) > 1 OR cst_id IS NULL
        )
    """,
    "crm_cust_info.untrimmed_names": """
        SELECT COUNT(*) FROM crm_cust_info
        WHERE cst_firstname != TRIM(cst_firstname) OR cst_lastname != TRIM(cst_lastname)
    """,
    "crm_cust_info.unexpected_marital_status": """
        SELECT COUNT(*) FROM crm_cust_info
        WHERE cst_marital_status IS NULL OR cst_marital_status NOT IN ('Single', 'Married', 'n/a')
    """,
    "crm_cust_info.unexpected_gender": """
        SELECT COUNT(*) FROM crm_cust_info
        WHERE cst_gndr IS NULL OR cst_gndr NOT IN ('Male', 'Female', 'n/a')
    """,
    "crm_prd_info.duplicate_or_null_id": """
        SELECT COUNT(*) FROM (
            SELECT prd_id FROM crm_prd_info
            GROUP BY prd_id HAVING COUNT(*) > 1 OR prd_id IS NULL
        )
    """,
    "crm_prd_info.negative_or_null_cost": """
        SELECT COUNT(*) FROM crm_prd_info WHERE prd_cost < 0 OR prd_cost IS NULL
    """,
    "crm_prd_info.unexpected_line": """
        SELECT COUNT(*) FROM crm_prd_info
        WHERE prd_line IS NULL
           OR prd_line NOT IN ('Mountain', 'Road', 'Other Sales', 'Touring', 'n/a')
    """,
    "crm_prd_info.end_before_start": """
        SELECT COUNT(*) FROM crm_prd_info WHERE prd_end_dt < prd_start_dt
    """,
    "crm_sales_details.order_after_ship_or_due": """
        SELECT COUNT(*) FROM crm_sales_details
        WHERE sls_order_dt > sls_ship_dt OR sls_order_dt > sls_due_dt
    """,
    "crm_sales_details.inconsistent_amounts": """
        SELECT COUNT(*) FROM crm_sales_details
        WHERE sls_sales != sls_quantity * sls_price
           OR sls_sales IS NULL OR sls_quantity IS NULL OR sls_price IS NULL
           OR sls_sales <= 0 OR sls_quantity <= 0 OR sls_price <= 0
    """,
    "erp_cust_az12.future_birthdate": """
        SELECT COUNT(*) FROM erp_cust_az12 WHERE bdate > DATE('now', 'localtime')
    """,
    "erp_cust_az12.unexpected_gender": """
        SELECT COUNT(*) FROM erp_cust_az12
        WHERE gen IS NULL OR gen NOT IN ('Male', 'Female', 'n/a')
    """,
    "erp_loc_a101.blank_country": """
        SELECT COUNT(*) FROM erp_loc_a101 WHERE cntry IS NULL OR TRIM(cntry) = ''
    """,
}


def run_quality_checks(db_file: Optional[str] = None) -> Dict[str, int]:
    """
    Run every silver quality check.

    Args:
        db_file: Path to the silver SQLite database file

    Returns:
        Number of offending rows per check; 0 means the check passed
    """
    db_file = db_file or config.SILVER_DB
    results = {}
    conn = sqlite3.connect(db_file)
    try:
        cursor = conn.cursor()
        for name, query in QUALITY_CHECKS.items():
            cursor.execute(query)
            results[name] = cursor.fetchone()[0]
    finally:
        conn.close()

    failed = {name: count for name, count in results.items() if count}
    if failed:
        logger.warning(f"Silver quality checks found issues: {failed}")
    else:
        logger.info(f"All {len(results)} silver quality checks passed")
    return results
