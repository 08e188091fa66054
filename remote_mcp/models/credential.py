"""Credential wrapper that keeps the secret out of logs and reprs."""


class Credential:
    """Opaque password held for the duration of one operation.

    The secret is only reachable through reveal(). str() and repr() are
    masked so the value cannot leak through logging or error messages.
    """

    __slots__ = ("_secret",)

    def __init__(self, secret: str) -> None:
        self._secret: str | None = secret

    def reveal(self) -> str:
        """Return the secret.

        Raises:
            ValueError: If the credential was already wiped.
        """
        if self._secret is None:
            raise ValueError("Credential has been wiped")
        return self._secret

    def wipe(self) -> None:
        """Drop the reference to the secret."""
        self._secret = None

    @property
    def is_wiped(self) -> bool:
        return self._secret is None

    def __repr__(self) -> str:
        return "Credential(***)"

    __str__ = __repr__
