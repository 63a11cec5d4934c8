"""
Lambda: Init DB

Run once after deployment to create the summary_records table.

Environment variables required:
- DB_CLUSTER_ARN
- SECRET_ARN
"""

import logging

import boto3

from .config import Config, get_logger

logger = logging.getLogger()

rds_data = boto3.client('rds-data')

CREATE_TABLE_SQL = """CREATE TABLE IF NOT EXISTS summary_records (
    id SERIAL PRIMARY KEY,
    debit_total NUMERIC(15, 2),
    credit_total NUMERIC(15, 2),
    created_at DATE
)"""


def initialize_db(config, client=None):
    client = client or rds_data
    client.execute_statement(
        resourceArn=config.db_cluster_arn,
        secretArn=config.db_secret_arn,
        database=config.db_name,
        sql=CREATE_TABLE_SQL,
    )


def handler(event, context):
    config = Config.from_env().require('db_cluster_arn', 'db_secret_arn')
    get_logger(config)

    initialize_db(config)
    logger.info(f"summary_records table ready in {config.db_name}")
    return {'status': 'initialized'}
