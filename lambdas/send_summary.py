"""
Lambda: Send Summary

Invoked by process_csv with a summary payload. Writes a plain-text summary to
BUCKET_NAME under OUTPUT_PREFIX and, if USE_SES is 'true', emails it from
SENDER to RECIPIENT.
"""

import logging
from datetime import datetime, timezone

import boto3
from botocore.exceptions import ClientError

from .config import Config, get_logger
from .transactions import SummaryData

logger = logging.getLogger()

s3 = boto3.client('s3')
ses = boto3.client('ses')

SUBJECT = 'Transaction Summary'


def render_summary(summary):
    lines = [
        SUBJECT,
        '',
        f"Debit total:   {summary.debit_total:.2f}",
        f"Credit total:  {summary.credit_total:.2f}",
        f"Total balance: {summary.total_balance:.2f}",
    ]
    if summary.transactions_by_month:
        lines += ['', 'Month     Transactions  Credits  Debits']
        for month in sorted(summary.transactions_by_month):
            credits = summary.avg_credits_by_month.get(month, 0)
            debits = summary.avg_debits_by_month.get(month, 0)
            lines.append(f"{month}   {summary.transactions_by_month[month]:>12}  {credits:.2f}  {debits:.2f}")
    return '\n'.join(lines) + '\n'


def store_output(body, config, now=None, client=None):
    client = client or s3
    now = now or datetime.now(timezone.utc)
    key = f"{config.output_prefix}summary-{now.strftime('%Y%m%dT%H%M%SZ')}.txt"
    client.put_object(Bucket=config.bucket_name, Key=key, Body=body.encode('utf-8'), ContentType='text/plain')
    return key


def send_email(body, sender, recipient, client=None):
    client = client or ses
    resp = client.send_email(
        Source=sender,
        Destination={'ToAddresses': [recipient]},
        Message={
            'Subject': {'Data': SUBJECT},
            'Body': {'Text': {'Data': body}},
        },
    )
    return resp['MessageId']


def handler(event, context):
    config = Config.from_env().require('bucket_name')
    if config.use_ses:
        config.require('sender', 'recipient')
    get_logger(config)

    summary = SummaryData.from_payload(event or {})
    body = render_summary(summary)

    key = store_output(body, config)
    logger.info(f"Stored summary at s3://{config.bucket_name}/{key}")

    result = {'output_key': key, 'emailed': False}
    if config.use_ses:
        try:
            message_id = send_email(body, config.sender, config.recipient)
        except ClientError as e:
            logger.error(f"failed to send email to {config.recipient}: {e}")
            raise
        logger.info(f"SES send success to {config.recipient} ({message_id})")
        result.update(emailed=True, message_id=message_id)
    return result
