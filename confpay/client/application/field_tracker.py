"""
Application layer: Handle and clear-value bookkeeping per confidential field.
"""

from __future__ import annotations

import logging

from confpay.client.domain.entities import (
    ClearValue,
    FieldName,
    FieldState,
    is_decryptable,
)

logger = logging.getLogger(__name__)


class FieldStateTracker:
    """Tracks the latest ciphertext handle and decrypted value of each field.

    The ledger is the single source of truth for handles: ``record_handle``
    replaces whatever was stored. A clear value is only evidence of the
    current plaintext while its handle equals the field's handle.
    """

    def __init__(self) -> None:
        self._fields: dict[FieldName, FieldState] = {
            name: FieldState() for name in FieldName
        }

    def current_handle(self, name: FieldName) -> str | None:
        return self._fields[name].handle

    def record_handle(self, name: FieldName, handle: str | None) -> bool:
        """Store a freshly read handle. Returns True if it changed."""
        state = self._fields[name]
        if state.handle == handle:
            return False
        logger.debug("Field %s handle %s -> %s", name.value, state.handle, handle)
        state.handle = handle
        return True

    def is_decrypted_for(self, name: FieldName, handle: str | None) -> bool:
        decrypted = self._fields[name].decrypted
        return decrypted is not None and handle is not None and decrypted.handle == handle

    def record_decryption(self, name: FieldName, handle: str, clear: int) -> bool:
        """Accept a clear value only if the field still points at ``handle``."""
        state = self._fields[name]
        if state.handle != handle:
            logger.info(
                "Dropping decryption of %s for field %s, handle moved to %s",
                handle,
                name.value,
                state.handle,
            )
            return False
        state.decrypted = ClearValue(handle=handle, clear=clear)
        return True

    def clear_value(self, name: FieldName) -> int | None:
        """The clear value if it is still valid for the current handle."""
        state = self._fields[name]
        if (
            state.decrypted is None
            or not state.is_decrypted
            or not is_decryptable(state.handle)
        ):
            return None
        return state.decrypted.clear

    def needs_decryption(self, name: FieldName) -> bool:
        handle = self._fields[name].handle
        return is_decryptable(handle) and not self.is_decrypted_for(name, handle)

    def reset(self, name: FieldName) -> None:
        self._fields[name] = FieldState()
