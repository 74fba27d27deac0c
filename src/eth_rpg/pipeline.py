"""Battle execution: validate, resolve characters, simulate, cache, record.

Character generation (wallet fetch, stat and class derivation) lives
outside this package and is reached through the :class:`CharacterSource`
protocol.
"""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
from typing import Callable, Protocol

from eth_rpg.battle.simulator import BattleSimulator
from eth_rpg.cache.caches import battle_cache_key, character_cache_key
from eth_rpg.cache.rate_limit import RateLimiter
from eth_rpg.cache.two_tier import TwoTierCache
from eth_rpg.config import DEFAULT_SITE_URL
from eth_rpg.errors import ErrorCode, InvalidInputError, RateLimitedError
from eth_rpg.models import BattleResponse, CharacterSheet
from eth_rpg.ranking.recorder import RankingRecorder

logger = logging.getLogger(__name__)

MAX_INPUT_LENGTH = 256
ETH_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
ENS_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9.-]*\.eth$")
NONCE_RE = re.compile(r"^[A-Za-z0-9-]{1,64}$")


def is_valid_input(value: str) -> bool:
    """``0x`` + 40 hex digits, or an ENS name ending in ``.eth``."""
    if len(value) > MAX_INPUT_LENGTH:
        return False
    return bool(ETH_ADDRESS_RE.match(value) or ENS_NAME_RE.match(value))


def is_valid_nonce(value: str) -> bool:
    return bool(NONCE_RE.match(value))


# ---------------------------------------------------------------------------
# Character resolution
# ---------------------------------------------------------------------------

class CharacterSource(Protocol):
    async def get_character(self, address: str) -> CharacterSheet:
        """Build the character for *address* (0x address or ENS name).

        Raises :class:`~eth_rpg.errors.EmptyWalletError` for wallets
        without activity.
        """
        ...


class CachedCharacterSource:
    """Serves characters from the character cache, generating on a miss."""

    def __init__(self, source: CharacterSource, cache: TwoTierCache[CharacterSheet]) -> None:
        self._source = source
        self._cache = cache

    async def get_character(self, address: str) -> CharacterSheet:
        cached = await self._cache.get(character_cache_key(address))
        if cached is not None:
            return cached
        sheet = await self._source.get_character(address)
        await self._cache.set(character_cache_key(address), sheet)
        if sheet.address.lower() != address.lower():
            await self._cache.set(character_cache_key(sheet.address), sheet)
        return sheet


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def _new_nonce() -> str:
    return str(uuid.uuid4())


class BattlePipeline:
    """Runs one battle request end to end.

    Parameters
    ----------
    characters:
        Resolves addresses to character sheets.
    battle_cache:
        Replay cache keyed by ``addr1:addr2:nonce``.
    recorder:
        Receives every freshly simulated battle in the background.
    rate_limiter:
        Applied when the caller passes a ``client_ip``.
    site_url:
        Base of the battle image URLs.
    """

    def __init__(
        self,
        characters: CharacterSource,
        battle_cache: TwoTierCache[BattleResponse],
        *,
        recorder: RankingRecorder | None = None,
        rate_limiter: RateLimiter | None = None,
        site_url: str = DEFAULT_SITE_URL,
        simulator: BattleSimulator | None = None,
        nonce_factory: Callable[[], str] = _new_nonce,
    ) -> None:
        self._characters = characters
        self._battle_cache = battle_cache
        self._recorder = recorder
        self._rate_limiter = rate_limiter
        self._site_url = site_url.rstrip("/")
        self._simulator = simulator or BattleSimulator()
        self._nonce_factory = nonce_factory

    async def execute(
        self,
        address1: str,
        address2: str,
        nonce: str | None = None,
        *,
        client_ip: str | None = None,
    ) -> BattleResponse:
        if self._rate_limiter is not None and client_ip is not None:
            limit = await self._rate_limiter.check(client_ip)
            if not limit.allowed:
                raise RateLimitedError()

        address1, address2, nonce = self.validate(address1, address2, nonce)

        if nonce is not None:
            cached = await self._battle_cache.get(battle_cache_key(address1, address2, nonce))
            if cached is not None:
                logger.debug("Replaying cached battle %s", nonce)
                return cached.model_copy(update={"cached": True})

        sheet1, sheet2 = await asyncio.gather(
            self._characters.get_character(address1),
            self._characters.get_character(address2),
        )
        if sheet1.address.lower() == sheet2.address.lower():
            raise InvalidInputError(code=ErrorCode.SAME_ADDRESS)

        battle_nonce = nonce or self._nonce_factory()
        result = self._simulator.run(sheet1, sheet2, battle_nonce)

        image_url = f"{self._site_url}/api/og/battle/{sheet1.address}/{sheet2.address}?n={battle_nonce}"
        response = BattleResponse(
            result=result,
            battle_image_url=image_url,
            og_image_url=image_url,
            cached=False,
        )

        keys = {
            battle_cache_key(address1, address2, battle_nonce),
            battle_cache_key(sheet1.address, sheet2.address, battle_nonce),
        }
        for key in keys:
            await self._battle_cache.set(key, response)

        if self._recorder is not None:
            self._recorder.schedule(result)
        return response

    @staticmethod
    def validate(
        address1: str,
        address2: str,
        nonce: str | None,
    ) -> tuple[str, str, str | None]:
        """Normalize and check request inputs before any engine work."""
        address1 = address1.strip().lower() if isinstance(address1, str) else ""
        address2 = address2.strip().lower() if isinstance(address2, str) else ""
        if not is_valid_input(address1):
            raise InvalidInputError("Please enter a valid first Ethereum address.")
        if not is_valid_input(address2):
            raise InvalidInputError("Please enter a valid second Ethereum address.")
        if address1 == address2:
            raise InvalidInputError(code=ErrorCode.SAME_ADDRESS)

        if nonce is not None:
            nonce = nonce.strip() or None
        if nonce is not None and not is_valid_nonce(nonce):
            raise InvalidInputError(code=ErrorCode.INVALID_NONCE)
        return address1, address2, nonce
