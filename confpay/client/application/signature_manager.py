"""
Application layer: Authorization grant acquisition and caching.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Callable, Iterable

from confpay.common.crypto import CryptoUtils
from confpay.common.exceptions import (
    AuthorizationDenied,
    AuthorizationMalformed,
    InvalidInput,
)
from confpay.common.models import AuthorizationGrant, AuthorizationMessage

if TYPE_CHECKING:
    from confpay.client.domain.entities import Identity
    from confpay.common.interfaces import GrantStore, Wallet

logger = logging.getLogger(__name__)

_GrantKey = tuple[int, str, frozenset[str]]


class SignatureManager:
    """Issues and caches decryption grants. The only component that asks the wallet to sign."""

    def __init__(
        self,
        wallet: Wallet,
        store: GrantStore,
        duration_days: int,
        clock: Callable[[], float] = time.time,
    ):
        self.wallet = wallet
        self.store = store
        self.duration_days = duration_days
        self.clock = clock
        self._pending: dict[_GrantKey, asyncio.Future[AuthorizationGrant]] = {}

    def cached_grant(
        self, resources: set[str], holder: Identity
    ) -> AuthorizationGrant | None:
        """Return a stored grant usable for the request, evicting expired ones."""
        now = self.clock()
        for grant in self.store.load(holder.chain_id, holder.account):
            if grant.is_expired(now):
                logger.debug("Evicting expired grant for %s", grant.holder)
                self.store.remove(grant)
                continue
            if grant.is_valid_for(holder.chain_id, holder.account, resources, now):
                return grant
        return None

    async def obtain_grant(
        self, resources: Iterable[str], holder: Identity
    ) -> AuthorizationGrant:
        """Return a valid grant for ``resources``, prompting the wallet only on a cache miss."""
        requested = {r.lower() for r in resources}
        if not requested:
            msg = "At least one resource address is required"
            raise InvalidInput(msg)

        account = self.wallet.account
        if account is None or account.lower() != holder.account:
            msg = "Grant holder is not the connected account"
            raise AuthorizationDenied(msg)

        grant = self.cached_grant(requested, holder)
        if grant is not None:
            logger.debug("Reusing cached grant for %s", holder.account)
            return grant

        key: _GrantKey = (holder.chain_id, holder.account, frozenset(requested))
        pending = self._pending.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future: asyncio.Future[AuthorizationGrant] = (
            asyncio.get_running_loop().create_future()
        )
        self._pending[key] = future
        try:
            grant = await self._sign_new_grant(requested, holder)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unobserved failure is not reported by the loop.
            future.exception()
            raise
        else:
            future.set_result(grant)
            return grant
        finally:
            del self._pending[key]

    async def _sign_new_grant(
        self, resources: set[str], holder: Identity
    ) -> AuthorizationGrant:
        public_key, private_key = CryptoUtils.generate_session_keypair()
        message = AuthorizationMessage(
            public_key=public_key,
            resources=sorted(resources),
            chain_id=holder.chain_id,
            start_timestamp=int(self.clock()),
            duration_days=self.duration_days,
        )

        logger.info("Requesting decryption signature from %s", holder.account)
        try:
            signature = await self.wallet.sign(message.to_bytes())
        except Exception as e:
            msg = f"Wallet refused to sign: {e}"
            raise AuthorizationDenied(msg) from e
        if signature is None:
            msg = "Wallet returned no signature"
            raise AuthorizationDenied(msg)
        if not CryptoUtils.is_hex_signature(signature):
            msg = f"Malformed signature from wallet: {signature!r}"
            raise AuthorizationMalformed(msg)

        grant = AuthorizationGrant(
            public_key=public_key,
            private_key=private_key,
            signature=signature,
            resources=tuple(message.resources),
            holder=holder.account,
            chain_id=holder.chain_id,
            start_timestamp=message.start_timestamp,
            duration_days=message.duration_days,
        )
        self.store.save(grant)
        logger.info("Decryption grant issued for %s", holder.account)
        return grant

    def revoke(self, holder: Identity) -> int:
        """Drop every cached grant of ``holder``."""
        return self.store.purge(holder.chain_id, holder.account)
