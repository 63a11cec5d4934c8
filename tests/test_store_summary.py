from datetime import date

import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber

from lambdas import store_summary
from lambdas.config import Config, ConfigError
from lambdas.transactions import SummaryData

CONFIG = Config(db_cluster_arn="arn:aws:rds:us-east-1:123456789012:cluster:db", db_secret_arn="arn:aws:secretsmanager:us-east-1:123456789012:secret:db")


def _expected(debit, credit, day):
    return {
        "resourceArn": CONFIG.db_cluster_arn,
        "secretArn": CONFIG.db_secret_arn,
        "database": "postgres",
        "sql": store_summary.INSERT_SUMMARY_SQL,
        "parameters": [
            {"name": "debit_total", "value": {"stringValue": debit}, "typeHint": "DECIMAL"},
            {"name": "credit_total", "value": {"stringValue": credit}, "typeHint": "DECIMAL"},
            {"name": "created_at", "value": {"stringValue": day}, "typeHint": "DATE"},
        ],
    }


def test_store_summary_inserts_totals():
    summary = SummaryData.from_payload({"debit_total": 125.0, "credit_total": 50.0})

    with Stubber(store_summary.rds_data) as stub:
        stub.add_response(
            "execute_statement", {"numberOfRecordsUpdated": 1}, _expected("125.00", "50.00", "2024-03-01")
        )
        inserted = store_summary.store_summary(summary, CONFIG, today=date(2024, 3, 1))

    assert inserted == 1


def test_handler_reads_payload(monkeypatch):
    monkeypatch.setenv("DB_CLUSTER_ARN", CONFIG.db_cluster_arn)
    monkeypatch.setenv("SECRET_ARN", CONFIG.db_secret_arn)
    monkeypatch.setenv("DB_NAME", "summaries")

    with Stubber(store_summary.rds_data) as stub:
        expected = _expected("10.50", "0.25", date.today().isoformat())
        expected["database"] = "summaries"
        stub.add_response("execute_statement", {"numberOfRecordsUpdated": 1}, expected)

        result = store_summary.handler({"debit_total": 10.5, "credit_total": 0.25, "total_balance": 10.75}, None)

    assert result == {"rows_inserted": 1}


def test_handler_propagates_database_errors(monkeypatch):
    monkeypatch.setenv("DB_CLUSTER_ARN", CONFIG.db_cluster_arn)
    monkeypatch.setenv("SECRET_ARN", CONFIG.db_secret_arn)

    with Stubber(store_summary.rds_data) as stub:
        stub.add_client_error("execute_statement", service_error_code="BadRequestException", http_status_code=400)

        with pytest.raises(ClientError):
            store_summary.handler({"debit_total": 1, "credit_total": 2}, None)


def test_handler_requires_database_settings(monkeypatch):
    monkeypatch.delenv("DB_CLUSTER_ARN", raising=False)
    monkeypatch.setenv("SECRET_ARN", "secret")

    with pytest.raises(ConfigError, match="db_cluster_arn"):
        store_summary.handler({}, None)
