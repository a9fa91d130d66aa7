"""
AWS credential resolution.

Precedence is explicit configuration, then environment variables, then the
cluster's own runtime identity. A key is only usable as half of a complete
pair; a lone access or secret key is ignored.
"""

import logging
import os
from typing import Mapping, Optional

from redshift_etl.models.credentials import AWSCredentials

logger = logging.getLogger(__name__)

# environment variables holding the fallback credential pair
SYSTEM_AWS_ACCESS_KEY = 'AWS_ACCESS_KEY'
SYSTEM_AWS_SECRET_KEY = 'AWS_SECRET_KEY'

PROTOCOL_AWS_ACCESS_KEY = 'awsacceskey'
PROTOCOL_AWS_SECRET_KEY = 'awssecretkey'


def _is_present(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ''


def resolve_credentials(explicit_access_key: Optional[str],
                        explicit_secret_key: Optional[str],
                        environment_access_key: Optional[str],
                        environment_secret_key: Optional[str]) -> AWSCredentials:
    """
    Pick the credentials used to authorize reads of staged data.

    Args:
        explicit_access_key: Access key from configuration
        explicit_secret_key: Secret key from configuration
        environment_access_key: Access key from the environment
        environment_secret_key: Secret key from the environment

    Returns:
        An explicit pair, or AWSCredentials.RUNTIME_DETERMINED
    """
    if _is_present(explicit_access_key) and _is_present(explicit_secret_key):
        return AWSCredentials(explicit_access_key, explicit_secret_key)

    if _is_present(environment_access_key) and _is_present(environment_secret_key):
        return AWSCredentials(environment_access_key, environment_secret_key)

    return AWSCredentials.RUNTIME_DETERMINED


def determine_aws_credentials(properties: Mapping[str, str],
                              environ: Optional[Mapping[str, str]] = None) -> AWSCredentials:
    """
    Resolve credentials from connector properties and the environment.

    Args:
        properties: Protocol properties, may hold awsacceskey/awssecretkey
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Resolved AWSCredentials
    """
    if environ is None:
        environ = os.environ

    credentials = resolve_credentials(
        properties.get(PROTOCOL_AWS_ACCESS_KEY),
        properties.get(PROTOCOL_AWS_SECRET_KEY),
        environ.get(SYSTEM_AWS_ACCESS_KEY),
        environ.get(SYSTEM_AWS_SECRET_KEY),
    )

    logger.debug(f"Resolved AWS credentials: {credentials}")
    return credentials
