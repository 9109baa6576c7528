"""Precondition validation for Arcade Duels challenges"""

import logging
from typing import Optional

from arcade.errors.handler import WalletError
from arcade.storage.registry import GameRegistry
from arcade.types.challenge import Participant, Rejection, RejectionReason
from arcade.types.game import GameKind
from arcade.wallet import WalletGateway

logger = logging.getLogger(__name__)


class PreconditionValidator:
    """Gate checked before a challenge is created. Reads only; never reserves funds."""

    def __init__(self, registry: GameRegistry, wallet: WalletGateway):
        self.registry = registry
        self.wallet = wallet

    async def validate(
        self,
        community_id: str,
        proposer: Participant,
        opponent: Participant,
        stake: int,
        game_kind: GameKind
    ) -> tuple[bool, Optional[Rejection]]:
        """
        Check whether ``proposer`` may challenge ``opponent``.
        Returns (is_valid, rejection) and stops at the first failed check.
        """
        if not await self.registry.is_enabled(community_id, game_kind):
            return False, Rejection(reason=RejectionReason.GAME_DISABLED)

        if opponent.user_id == proposer.user_id:
            return False, Rejection(reason=RejectionReason.SELF_CHALLENGE)

        if opponent.is_bot:
            return False, Rejection(reason=RejectionReason.INVALID_OPPONENT)

        if stake < 0:
            return False, Rejection(reason=RejectionReason.INVALID_STAKE)

        if stake > 0:
            return await self._validate_funds(community_id, proposer, opponent, stake)

        return True, None

    async def _validate_funds(
        self,
        community_id: str,
        proposer: Participant,
        opponent: Participant,
        stake: int
    ) -> tuple[bool, Optional[Rejection]]:
        """Both players must hold at least the stake; the proposer is checked first"""
        for participant in (proposer, opponent):
            try:
                balance = await self.wallet.get_balance(participant.user_id, community_id)
            except WalletError as e:
                # An unreadable balance cannot cover the stake
                logger.warning(f"Balance lookup failed for {participant.user_id}: {e}")
                balance = 0

            if balance < stake:
                return False, Rejection(
                    reason=RejectionReason.INSUFFICIENT_FUNDS,
                    who=participant.user_id,
                    balance=balance,
                    required=stake,
                )

        return True, None
