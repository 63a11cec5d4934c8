"""
Lambda: Process CSV

Triggered by S3 ObjectCreated notifications under INPUT_PREFIX. For each
uploaded object it:
- reads the CSV from S3
- parses and aggregates it into a SummaryData
- invokes the store function (STORE_ARN), then the send function (SEND_ARN)

Each object in the event is processed on its own; a failed object does not
stop the others, but the invocation fails if any object failed.

Environment variables required:
- STORE_ARN
- SEND_ARN
"""

import json
import logging
from typing import Protocol
from urllib.parse import unquote_plus

import boto3

from .config import Config, get_logger
from .transactions import (
    BatchProcessingError,
    DispatchError,
    SourceUnavailableError,
    SummaryPipelineError,
    aggregate,
    parse_transactions,
)

logger = logging.getLogger()

s3 = boto3.client('s3')
lambda_client = boto3.client('lambda')

STORE = 'store'
NOTIFY = 'notify'


class InvokedFunctionError(Exception):
    """The invoked function ran but reported a FunctionError."""

    def __init__(self, function_name, error_type, body):
        super().__init__(f"{function_name} returned {error_type}: {body}")
        self.function_name = function_name
        self.error_type = error_type


class Sink(Protocol):
    def deliver(self, summary):
        ...


class LambdaSink:
    """Delivers a summary by invoking another Lambda function with its JSON payload."""

    def __init__(self, function_name, invocation_type='RequestResponse', client=None):
        self.function_name = function_name
        self.invocation_type = invocation_type
        self.client = client or lambda_client

    def deliver(self, summary):
        response = self.client.invoke(
            FunctionName=self.function_name,
            InvocationType=self.invocation_type,
            Payload=json.dumps(summary.to_payload()),
        )
        if response.get('FunctionError'):
            body = response['Payload'].read().decode('utf-8') if response.get('Payload') else ''
            raise InvokedFunctionError(self.function_name, response['FunctionError'], body)
        return response.get('StatusCode')


def read_csv_from_s3(bucket, key, client=None):
    client = client or s3
    obj = client.get_object(Bucket=bucket, Key=key)
    return obj['Body'].read().decode('utf-8')


def run_pipeline(fetch, sinks: list[tuple[str, Sink]]):
    """
    Run one invocation: fetch, parse, aggregate, then deliver to `sinks` in order.

    `fetch` returns the CSV text. `sinks` is an ordered list of
    (target, Sink) pairs; the first failing sink stops the rest. Errors are
    raised with their `stage` set.
    """
    try:
        csv_data = fetch()
    except Exception as e:
        raise SourceUnavailableError(f"failed to read CSV: {e}", stage='fetching') from e

    try:
        # aggregate drives the parser, so parse errors surface here
        summary = aggregate(parse_transactions(csv_data))
    except SummaryPipelineError as e:
        e.stage = 'parsing'
        raise

    for target, sink in sinks:
        try:
            sink.deliver(summary)
        except Exception as e:
            raise DispatchError(target, str(e)) from e
    return summary


def build_sinks(config, client=None):
    return [
        (STORE, LambdaSink(config.store_function, config.invocation_type, client)),
        (NOTIFY, LambdaSink(config.send_function, config.invocation_type, client)),
    ]


def _object_refs(event):
    records = event.get('Records', []) if isinstance(event, dict) else []
    for record in records:
        s3_entity = record.get('s3', {})
        bucket = s3_entity.get('bucket', {}).get('name')
        key = unquote_plus(s3_entity.get('object', {}).get('key', ''))
        yield bucket, key


def process_event(event, config, sinks, fetcher=read_csv_from_s3):
    """Process every object of an S3 event. Returns a report per object."""
    results = []
    for bucket, key in _object_refs(event):
        if config.input_prefix and not key.startswith(config.input_prefix):
            logger.info(f"Skipping s3://{bucket}/{key}: outside {config.input_prefix}")
            results.append({'bucket': bucket, 'key': key, 'status': 'skipped'})
            continue

        logger.info(f"Processing s3://{bucket}/{key}")
        try:
            summary = run_pipeline(lambda: fetcher(bucket, key), sinks)
        except SummaryPipelineError as e:
            logger.error(f"Failed s3://{bucket}/{key} at stage {e.stage}: {e}")
            results.append({'bucket': bucket, 'key': key, 'status': 'failed', 'stage': e.stage, 'error': str(e)})
            continue

        logger.info(
            f"Summarized s3://{bucket}/{key}: debit={summary.debit_total} "
            f"credit={summary.credit_total} months={len(summary.transactions_by_month)}"
        )
        results.append({'bucket': bucket, 'key': key, 'status': 'done', 'summary': summary.to_payload()})
    return results


def handler(event, context):
    """Main Lambda entrypoint."""
    config = Config.from_env().require('store_function', 'send_function')
    get_logger(config)

    results = process_event(event, config, build_sinks(config))
    failures = [r for r in results if r['status'] == 'failed']
    if failures:
        raise BatchProcessingError(failures)

    logger.info(f"Processed {len(results)} object(s)")
    return {'processed': len(results), 'results': results}
