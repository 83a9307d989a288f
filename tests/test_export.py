"""
Tests for Parquet snapshots and S3 upload of the silver layer
"""
import os
from unittest import mock

import pandas as pd
from botocore.exceptions import ClientError

from silver_refresh import export
from silver_refresh.run_pipeline import run_full_refresh


def test_export_silver_layer(bronze_db, silver_db, tmp_path, read_table):
    run_full_refresh(bronze_db=bronze_db, silver_db=silver_db)
    output_dir = str(tmp_path / "exports")

    exported = export.export_silver_layer(silver_db, output_dir)

    assert set(exported) == {
        "crm_cust_info", "crm_prd_info", "crm_sales_details",
        "erp_cust_az12", "erp_loc_a101", "erp_px_cat_g1v2",
    }
    for table, path in exported.items():
        assert os.path.dirname(path) == output_dir
        assert path.endswith(f"_silver_{table}.parquet")
    snapshot = pd.read_parquet(exported["erp_loc_a101"])
    pd.testing.assert_frame_equal(snapshot, read_table(silver_db, "erp_loc_a101"))


def test_empty_tables_are_not_exported(silver_conn, tmp_path):
    db_file = silver_conn.execute("PRAGMA database_list").fetchone()[2]

    exported = export.export_silver_layer(db_file, str(tmp_path / "exports"), tables=["erp_loc_a101"])

    assert exported == {}
    assert os.listdir(tmp_path / "exports") == []


def test_upload_file_to_s3():
    with mock.patch.object(export.boto3, "client") as client_factory:
        assert export.upload_file_to_s3("/tmp/a.parquet", "bucket", "a.parquet")

    client_factory.assert_called_once()
    assert client_factory.call_args[0] == ("s3",)
    client_factory.return_value.upload_file.assert_called_once_with("/tmp/a.parquet", "bucket", "a.parquet")


def test_upload_failure_is_reported():
    error = ClientError({"Error": {"Code": "403", "Message": "Forbidden"}}, "PutObject")
    with mock.patch.object(export.boto3, "client") as client_factory:
        client_factory.return_value.upload_file.side_effect = error

        assert not export.upload_file_to_s3("/tmp/a.parquet", "bucket", "a.parquet")


def test_upload_silver_exports_uses_file_names():
    exported = {"erp_loc_a101": "/tmp/exports/2024_silver_erp_loc_a101.parquet"}
    with mock.patch.object(export, "upload_file_to_s3", return_value=True) as upload:
        result = export.upload_silver_exports(exported, bucket="silver-bucket")

    assert result == {"erp_loc_a101": True}
    upload.assert_called_once_with(
        "/tmp/exports/2024_silver_erp_loc_a101.parquet", "silver-bucket", "2024_silver_erp_loc_a101.parquet"
    )
