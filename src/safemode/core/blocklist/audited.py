"""Block/unblock paired with their audit record.

block_and_log() and unblock_and_log() sequence the mutation and the
add_log() call and report which half failed. They do not make the pair
atomic: when the audit write fails, the mutation has already happened and
is not rolled back. AuditWriteFailedError carries the completed outcome so
the caller can retry the audit write or compensate.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from safemode.contracts.blocklist import Action, ActionType, BlockData, Blocklist
from safemode.contracts.errors import AuditWriteFailedError, BlocklistError, MutationFailedError
from safemode.core.identifiers import ContentId, parse_cid


@dataclass(frozen=True)
class BlockOutcome:
    """Result of block_and_log().

    Attributes:
        newly_blocked: Ids that were blocked by this call
        already_blocked: Ids that were blocked before (metadata untouched)
        action: The audit record as stored, or None if not yet written
    """

    newly_blocked: tuple[ContentId, ...]
    already_blocked: tuple[ContentId, ...]
    action: Action | None = None


@dataclass(frozen=True)
class UnblockOutcome:
    """Result of unblock_and_log()."""

    unblocked: tuple[ContentId, ...]
    action: Action | None = None


def block_and_log(
    blocklist: Blocklist,
    data: BlockData,
    ids: Sequence[ContentId] | None = None,
) -> BlockOutcome:
    """Block every id, then record one "block" action for all of them.

    Args:
        blocklist: Backend to mutate
        data: Form data; data.blocked supplies the ids when ids is None
        ids: Identifiers to block

    Raises:
        InvalidIdentifierError: If any id is malformed (nothing is mutated)
        MutationFailedError: If a block() call fails (no audit record)
        AuditWriteFailedError: If the audit write fails after all blocks
    """
    targets = tuple(parse_cid(i) for i in (data.blocked if ids is None else ids))
    if not targets:
        raise ValueError("block_and_log requires at least one identifier")

    newly: list[ContentId] = []
    already: list[ContentId] = []
    for target in targets:
        try:
            created = blocklist.block(target, data)
        except BlocklistError as e:
            raise MutationFailedError(
                f"block failed for {target}: {e}",
                completed=(*newly, *already),
                failed_id=target,
            ) from e
        (newly if created else already).append(target)

    outcome = BlockOutcome(newly_blocked=tuple(newly), already_blocked=tuple(already))
    action = Action(typ=ActionType.BLOCK.value, ids=targets, reason=data.reason, user=data.user)
    try:
        stored = blocklist.add_log(action)
    except BlocklistError as e:
        raise AuditWriteFailedError(f"content blocked but audit write failed: {e}", outcome=outcome) from e
    return BlockOutcome(newly_blocked=outcome.newly_blocked, already_blocked=outcome.already_blocked, action=stored)


def unblock_and_log(
    blocklist: Blocklist,
    ids: Sequence[ContentId],
    *,
    user: str,
    reason: str = "",
) -> UnblockOutcome:
    """Unblock every id, then record one "unblock" action for all of them.

    Raises:
        InvalidIdentifierError: If any id is malformed (nothing is mutated)
        MutationFailedError: If an unblock() call fails, including NotFoundError
            (no audit record; earlier ids stay unblocked)
        AuditWriteFailedError: If the audit write fails after all unblocks
    """
    targets = tuple(parse_cid(i) for i in ids)
    if not targets:
        raise ValueError("unblock_and_log requires at least one identifier")

    done: list[ContentId] = []
    for target in targets:
        try:
            blocklist.unblock(target)
        except BlocklistError as e:
            raise MutationFailedError(
                f"unblock failed for {target}: {e}",
                completed=tuple(done),
                failed_id=target,
            ) from e
        done.append(target)

    outcome = UnblockOutcome(unblocked=tuple(done))
    action = Action(typ=ActionType.UNBLOCK.value, ids=targets, reason=reason, user=user)
    try:
        stored = blocklist.add_log(action)
    except BlocklistError as e:
        raise AuditWriteFailedError(f"content unblocked but audit write failed: {e}", outcome=outcome) from e
    return UnblockOutcome(unblocked=outcome.unblocked, action=stored)
