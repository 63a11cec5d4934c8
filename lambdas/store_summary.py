"""
Lambda: Store Summary

Invoked by process_csv with a summary payload; inserts one row into the
summary_records table through the RDS Data API.

Environment variables required:
- DB_CLUSTER_ARN
- SECRET_ARN
- DB_NAME (defaults to 'postgres')
"""

import logging
from datetime import date

import boto3
from botocore.exceptions import ClientError

from .config import Config, get_logger
from .transactions import SummaryData

logger = logging.getLogger()

rds_data = boto3.client('rds-data')

INSERT_SUMMARY_SQL = (
    "INSERT INTO summary_records (debit_total, credit_total, created_at) "
    "VALUES (:debit_total, :credit_total, :created_at)"
)


def _decimal_param(name, value):
    return {'name': name, 'value': {'stringValue': f"{value:.2f}"}, 'typeHint': 'DECIMAL'}


def store_summary(summary, config, today=None, client=None):
    """Insert the totals of `summary`; returns the number of rows inserted."""
    client = client or rds_data
    today = today or date.today()
    resp = client.execute_statement(
        resourceArn=config.db_cluster_arn,
        secretArn=config.db_secret_arn,
        database=config.db_name,
        sql=INSERT_SUMMARY_SQL,
        parameters=[
            _decimal_param('debit_total', summary.debit_total),
            _decimal_param('credit_total', summary.credit_total),
            {'name': 'created_at', 'value': {'stringValue': today.isoformat()}, 'typeHint': 'DATE'},
        ],
    )
    return resp.get('numberOfRecordsUpdated', 0)


def handler(event, context):
    config = Config.from_env().require('db_cluster_arn', 'db_secret_arn')
    get_logger(config)

    summary = SummaryData.from_payload(event or {})
    try:
        inserted = store_summary(summary, config)
    except ClientError as e:
        logger.error(f"failed to insert summary data into the database: {e}")
        raise

    logger.info(f"Successfully inserted to db: {inserted} rows affected")
    return {'rows_inserted': inserted}
