"""
AWS credentials used to authorize Redshift to read staged data.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class AWSCredentials:
    """
    Either an explicit access/secret key pair or the RUNTIME_DETERMINED
    sentinel, meaning the cluster uses its own attached IAM role.

    The secret key is excluded from repr() so a credentials object can be
    logged or shown in a traceback without leaking it.
    """
    access_key: Optional[str] = None
    secret_key: Optional[str] = field(default=None, repr=False)

    @property
    def is_runtime_determined(self) -> bool:
        return self.access_key is None or self.secret_key is None

    def redacted(self) -> 'AWSCredentials':
        """Copy with both keys masked, for rendering commands into logs"""
        if self.is_runtime_determined:
            return self
        return AWSCredentials('***', '***')

    def __str__(self) -> str:
        if self.is_runtime_determined:
            return "AWSCredentials(RUNTIME_DETERMINED)"
        return "AWSCredentials(access_key=***, secret_key=***)"


AWSCredentials.RUNTIME_DETERMINED = AWSCredentials()
