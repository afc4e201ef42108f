"""X509 certificates and names."""

from .certificate import Certificate
from .name import DistinguishedName

__all__ = ["Certificate", "DistinguishedName"]
