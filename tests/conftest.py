import io
import os

import pytest
from botocore.response import StreamingBody

# boto3 clients are created at import time in the lambda modules
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')
os.environ.setdefault('AWS_ACCESS_KEY_ID', 'testing')
os.environ.setdefault('AWS_SECRET_ACCESS_KEY', 'testing')

SAMPLE_CSV = (
    "id,type,amount,date\n"
    "1,Debit,100.00,2024-01-15\n"
    "2,Credit,50.00,2024-01-20\n"
    "3,Debit,25.00,2024-02-01\n"
)


def streaming_body(data):
    if isinstance(data, str):
        data = data.encode('utf-8')
    return StreamingBody(io.BytesIO(data), len(data))


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def make_body():
    return streaming_body
