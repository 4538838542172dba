"""Gemini API key handling. The key only ever lives in process memory."""
import logging

logger = logging.getLogger(__name__)


class CredentialHolder:
    def __init__(self):
        self._key = None

    @property
    def is_set(self) -> bool:
        return self._key is not None

    def set(self, key: str) -> None:
        key = (key or "").strip()
        if not key:
            raise ValueError("API key must not be empty")
        self._key = key
        logger.info("API key accepted for this session")

    def get(self) -> str:
        if self._key is None:
            raise LookupError("No API key has been entered")
        return self._key

    def __repr__(self):
        return f"CredentialHolder(is_set={self.is_set})"


class KeyEntry:
    """
    Transient buffer behind the key entry form.

    The value is wiped as soon as it has been handed to the holder so the
    key can't be read back out of the form afterwards.
    """

    def __init__(self, value: str = ""):
        self.value = value

    def submit(self, holder: CredentialHolder) -> bool:
        if not self.value.strip():
            return False
        holder.set(self.value)
        self.value = ""
        return True

    def __repr__(self):
        return "KeyEntry(value=<hidden>)"
