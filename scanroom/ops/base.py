from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar

from scanroom.scene.store import SceneStore

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class OpContext:
    user: str = "system"
    source: str = "api"  # api | cli


def record_event(store: SceneStore, *, op_name: str, args: Dict[str, Any], ctx: OpContext) -> None:
    store.history.append(
        {
            "action": f"ops.{op_name}",
            "source": ctx.source,
            "user": ctx.user,
            "args": args,
        }
    )


def execute_op(
    store: SceneStore,
    *,
    op_name: str,
    args: Dict[str, Any],
    ctx: Optional[OpContext] = None,
    validate: Optional[Callable[[], None]],
    mutate: Callable[[], T],
) -> T:
    """
    Run one editing operation: check its preconditions, then mutate the store.

    A failing `validate` leaves the store untouched. If `mutate` raises, the
    store is rolled back to its state before the operation and the error
    propagates. IDs issued by a failed operation are not reused.
    """
    context = ctx or OpContext()
    if validate is not None:
        validate()
    snap = store.snapshot()
    log.debug("ops.%s %s", op_name, args)
    try:
        out = mutate()
    except Exception:
        log.warning("ops.%s failed; rolling back", op_name)
        store.restore(snap)
        raise
    record_event(store, op_name=op_name, args=args, ctx=context)
    return out
