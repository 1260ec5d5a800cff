"""
Descriptive counts over fetched records.
"""

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from .conversions import parse_file_size
from .models import AccountRecord, SecretRecord, SecretType, SetRecord, SystemRecord

UNKNOWN = "Unknown"


class MetricsAggregator:
    """Counts and histograms over collections that were already fetched."""

    def __init__(self, secrets: Iterable[SecretRecord] = (), accounts: Iterable[AccountRecord] = (),
                 sets: Iterable[SetRecord] = (), systems: Iterable[SystemRecord] = ()):
        self.secrets: List[SecretRecord] = list(secrets)
        self.accounts: List[AccountRecord] = list(accounts)
        self.sets: List[SetRecord] = list(sets)
        self.systems: List[SystemRecord] = list(systems)

    def secret_counts_by_type(self) -> Dict[str, int]:
        return dict(Counter(s.type.value for s in self.secrets))

    def get_total_file_size(self) -> int:
        """Total size in bytes of all File secrets."""
        return sum(parse_file_size(s.file_size) for s in self.secrets if s.type == SecretType.FILE)

    def account_counts_by_type(self) -> Dict[str, int]:
        return dict(Counter(a.account_type.value for a in self.accounts))

    def account_health_histogram(self) -> Dict[str, int]:
        return dict(Counter(a.health_state or UNKNOWN for a in self.accounts))

    def managed_account_ratio(self) -> Optional[float]:
        if not self.accounts:
            return None
        return sum(1 for a in self.accounts if a.is_managed) / len(self.accounts)

    def set_counts_by_kind(self) -> Dict[str, int]:
        return dict(Counter(s.set_kind.value for s in self.sets))

    def set_counts_by_object_type(self) -> Dict[str, int]:
        return dict(Counter(s.object_type or UNKNOWN for s in self.sets))

    def system_counts_by_os(self) -> Dict[str, int]:
        return dict(Counter(s.operating_system or UNKNOWN for s in self.systems))

    def summary(self) -> Dict[str, Any]:
        return {
            'secrets': {
                'total': len(self.secrets),
                'by_type': self.secret_counts_by_type(),
                'total_file_size_bytes': self.get_total_file_size(),
            },
            'accounts': {
                'total': len(self.accounts),
                'by_type': self.account_counts_by_type(),
                'health': self.account_health_histogram(),
                'managed_ratio': self.managed_account_ratio(),
            },
            'sets': {
                'total': len(self.sets),
                'by_kind': self.set_counts_by_kind(),
                'by_object_type': self.set_counts_by_object_type(),
            },
            'systems': {
                'total': len(self.systems),
                'by_os': self.system_counts_by_os(),
            },
        }
