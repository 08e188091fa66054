"""Authentication strategy identifiers."""

from enum import Enum


class StrategyKind(Enum):
    """Ways of obtaining an authenticated session, in preference order."""

    NATIVE = "native"
    HELPER_A = "sshpass"
    HELPER_B = "plink"
    INTERACTIVE = "interactive"
