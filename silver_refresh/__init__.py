"""
Silver Layer Refresh Package

Modules:
    config.py       - Environment-driven paths and S3 settings.
    bronze.py       - Loads the CRM/ERP source CSV files into the bronze layer.
    transforms.py   - Per-table cleaning rules from bronze to silver.
    silver.py       - Silver tables and the truncate-and-reload TableRefresher.
    run_log.py      - Start/end timings and progress lines for each load.
    quality.py      - Post-load checks on the silver layer.
    export.py       - Parquet snapshots of silver tables and S3 upload.
    run_pipeline.py - Orchestrates the full silver refresh.

Version: 1.0.0
"""
__version__ = "1.0.0"
