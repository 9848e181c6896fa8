"""Session use cases.

- Transport code calls only this module; it never touches the store directly.
- Each operation validates, mutates through the store, then publishes one event.
- Nothing here holds state between calls and nothing retries: store and backend
  errors propagate to the caller unchanged.
"""

import logging
import math
from typing import Callable, List, Tuple

from jumbler.domain.partitioning import partition
from jumbler.errors import EmptySession, InvalidConfiguration, SessionNotFound
from jumbler.models.session_models import (
    FairnessConfigModel,
    FairnessConfigUpdateModel,
    MemberAttributesModel,
    MemberModel,
    PartitionResultModel,
    SessionViewModel,
)
from jumbler.session_store import SessionStore

MEMBER_JOINED = "member-joined"
MEMBER_LEFT = "member-left"
CONFIG_UPDATED = "config-updated"
PARTITION_COMPLETE = "partition-complete"
SESSION_CLOSED = "session-closed"

WEIGHT_FIELDS = ("diversity_weight", "gender_balance_weight")


def normalize_code(code: str) -> str:
    """Session codes are case-insensitive for people typing them in."""
    return code.strip().upper()


def validate_config_update(partial: FairnessConfigUpdateModel) -> None:
    """Reject out of range configuration values.

    Raises:
        InvalidConfiguration: team count below one, or a weight outside [0, 1]
    """
    if partial.team_count is not None and partial.team_count < 1:
        raise InvalidConfiguration(
            f"team_count must be at least 1, got {partial.team_count}"
        )
    for name in WEIGHT_FIELDS:
        value = getattr(partial, name)
        if value is None:
            continue
        if not math.isfinite(value) or value < 0.0 or value > 1.0:
            raise InvalidConfiguration(f"{name} must be between 0 and 1, got {value}")


class SessionCoordinator:
    def __init__(
        self,
        store: SessionStore,
        partitioner: Callable[..., PartitionResultModel] = partition,
    ):
        self.store = store
        self.partitioner = partitioner

    async def create_session(self, creator_id: str) -> str:
        """Create an empty session. Nobody is subscribed yet, so nothing is published."""
        return await self.store.create(creator_id)

    async def join_session(
        self, code: str, member_id: str, attrs: MemberAttributesModel
    ) -> Tuple[str, List[MemberModel]]:
        """Add (or refresh) a member and announce it to the session.

        Args:
            code (str): Session code
            member_id (str): Connection id of the joining participant
            attrs (MemberAttributesModel): Name, organization and gender

        Returns:
            Tuple[str, List[MemberModel]]: The member id and the roster after the join
        """
        code = normalize_code(code)
        member = MemberModel(id=member_id, **attrs.model_dump())
        session = await self.store.upsert_member(code, member)
        roster = session.roster()
        await self.store.publish(
            code,
            MEMBER_JOINED,
            {
                "member": member.model_dump(mode="json"),
                "members": [m.model_dump(mode="json") for m in roster],
            },
        )
        logging.info(f"{member.name!r} joined session {code} ({len(roster)} members)")
        return member_id, roster

    async def leave_session(self, code: str, member_id: str) -> List[MemberModel]:
        """Remove a member. Leaving twice is not an error and publishes only once.

        Returns:
            List[MemberModel]: The roster after the removal
        """
        code = normalize_code(code)
        removed = await self.store.remove_member(code, member_id)
        roster = (await self.store.get(code)).roster()
        if removed:
            await self.store.publish(
                code,
                MEMBER_LEFT,
                {
                    "member_id": member_id,
                    "members": [m.model_dump(mode="json") for m in roster],
                },
            )
            logging.info(f"Member {member_id} left session {code}")
        return roster

    async def update_configuration(
        self, code: str, partial: FairnessConfigUpdateModel
    ) -> FairnessConfigModel:
        """Merge a partial configuration into the session.

        The stored configuration is left unchanged when validation fails.

        Returns:
            FairnessConfigModel: The configuration after the merge
        """
        code = normalize_code(code)
        if not await self.store.exists(code):
            raise SessionNotFound(code)
        validate_config_update(partial)
        session = await self.store.update_config(code, partial)
        await self.store.publish(
            code, CONFIG_UPDATED, {"config": session.config.model_dump(mode="json")}
        )
        logging.info(f"Config updated for session {code}: {partial.model_dump(exclude_none=True)}")
        return session.config

    async def run_partition(self, code: str) -> PartitionResultModel:
        """Split the current roster into teams, store the result and broadcast it."""
        code = normalize_code(code)
        session = await self.store.get(code)
        roster = session.roster()
        if not roster:
            raise EmptySession(code)

        result = self.partitioner(roster, session.config)
        await self.store.set_partition_result(code, result)
        await self.store.publish(code, PARTITION_COMPLETE, result.model_dump(mode="json"))
        logging.info(
            f"Session {code} partitioned into {len(result.teams)} teams, "
            f"diversity {result.diversity_score}%, gender balance {result.gender_balance_score}%"
        )
        return result

    async def get_snapshot(self, code: str) -> SessionViewModel:
        """Read-only view of the session. Does not extend its lifetime."""
        session = await self.store.get(normalize_code(code))
        return SessionViewModel(
            code=session.code,
            members=session.roster(),
            config=session.config,
            result=session.result,
            shuffled=session.shuffled,
        )

    async def close_session(self, code: str) -> bool:
        """Delete the session and tell its watchers.

        Returns:
            bool: False if the session did not exist
        """
        code = normalize_code(code)
        existed = await self.store.delete(code)
        if existed:
            await self.store.publish(code, SESSION_CLOSED, {"code": code})
        return existed

