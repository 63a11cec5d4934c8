"""
Settings shared by the Lambda functions.

Read once from the environment at cold start and passed down explicitly.

Environment variables:
- STORE_ARN, SEND_ARN     functions invoked by process_csv
- BUCKET_NAME             bucket holding input/ and output/ objects
- INPUT_PREFIX            (defaults to 'input/')
- OUTPUT_PREFIX           (defaults to 'output/')
- DB_CLUSTER_ARN, SECRET_ARN, DB_NAME (defaults to 'postgres')
- USE_SES                 'true' to email the summary (defaults to 'false')
- SENDER, RECIPIENT
- INVOCATION_TYPE         (defaults to 'RequestResponse')
- LOG_LEVEL               (defaults to 'INFO')
"""

import logging
import os
from dataclasses import dataclass


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Config:
    store_function: str = ''
    send_function: str = ''
    bucket_name: str = ''
    input_prefix: str = 'input/'
    output_prefix: str = 'output/'
    db_cluster_arn: str = ''
    db_secret_arn: str = ''
    db_name: str = 'postgres'
    use_ses: bool = False
    sender: str = ''
    recipient: str = ''
    invocation_type: str = 'RequestResponse'
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        return cls(
            store_function=env.get('STORE_ARN', ''),
            send_function=env.get('SEND_ARN', ''),
            bucket_name=env.get('BUCKET_NAME', ''),
            input_prefix=env.get('INPUT_PREFIX', 'input/'),
            output_prefix=env.get('OUTPUT_PREFIX', 'output/'),
            db_cluster_arn=env.get('DB_CLUSTER_ARN', ''),
            db_secret_arn=env.get('SECRET_ARN', ''),
            db_name=env.get('DB_NAME', 'postgres'),
            use_ses=env.get('USE_SES', 'false').strip().lower() == 'true',
            sender=env.get('SENDER', ''),
            recipient=env.get('RECIPIENT', ''),
            invocation_type=env.get('INVOCATION_TYPE', 'RequestResponse'),
            log_level=env.get('LOG_LEVEL', 'INFO').upper(),
        )

    def require(self, *names):
        """Raise ConfigError naming every listed field that is empty."""
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            raise ConfigError(f"missing required settings: {', '.join(missing)}")
        return self


def get_logger(config):
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, config.log_level, logging.INFO))
    return logger
