"""
BaseService -- abstract base for every marketplace service.

Responsibility:
    Owns the transaction boundary of one public operation.  Concrete
    services implement the body as a plain function that raises typed
    kernel exceptions; ``_run`` turns it into an ``OperationResult``:

    * body returns          -> commit, dispatch queued notifications, ok
    * SourcingKernelError   -> rollback, fail (status from error kind)
    * SQLAlchemyError       -> rollback, fail with a retryable CollaboratorError
    * anything else         -> rollback, re-raise (programming error)

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Module services
    in ``sourcing_modules`` extend this class.

Invariants enforced:
    - No domain or persistence exception crosses the service boundary.
    - Notifications queued during a failed operation are discarded.
    - With ``auto_commit=False`` the caller owns commit/rollback, so one
      service can run inside another service's transaction.
"""

from abc import ABC
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sourcing_kernel.domain.clock import Clock, SystemClock
from sourcing_kernel.domain.results import OperationResult
from sourcing_kernel.exceptions import CollaboratorError, SourcingKernelError
from sourcing_kernel.logging_config import get_logger
from sourcing_kernel.services.notification import (
    Notification,
    NotificationSink,
    NullNotificationSink,
    dispatch_notifications,
)

logger = get_logger("services.base")

T = TypeVar("T")


class BaseService(ABC):
    """
    Abstract base class for services that mutate marketplace state.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller.  Each public
        operation goes through ``_run`` exactly once.

    Non-goals:
        - Read-only queries belong in selectors.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: NotificationSink | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._notifier = notifier or NullNotificationSink()
        self._auto_commit = auto_commit
        self._pending: list[Notification] = []

    def _notify(self, event_type: str, recipient_id, **payload: Any) -> None:
        """Queue a notification for delivery after commit."""
        self._pending.append(
            Notification(event_type=event_type, recipient_id=recipient_id, payload=payload)
        )

    def _run(
        self,
        operation: str,
        body: Callable[[], T],
        **log_fields: Any,
    ) -> OperationResult[T]:
        fields = {k: str(v) for k, v in log_fields.items() if v is not None}
        queued_before = len(self._pending)
        try:
            value = body()
            if self._auto_commit:
                self._session.commit()
            else:
                self._session.flush()
        except SourcingKernelError as exc:
            self._rollback(queued_before)
            logger.warning(
                f"{operation}_rejected",
                extra={**fields, "error_code": exc.code, "error_kind": exc.kind},
            )
            return OperationResult.fail(exc)
        except SQLAlchemyError as exc:
            self._rollback(queued_before)
            logger.error(
                f"{operation}_persistence_failed",
                extra={**fields, "error_type": type(exc).__name__},
                exc_info=True,
            )
            return OperationResult.fail(CollaboratorError("persistence", str(exc)))
        except Exception:
            self._rollback(queued_before)
            raise

        logger.info(f"{operation}_committed", extra=fields)
        if self._auto_commit:
            pending, self._pending = self._pending, []
            dispatch_notifications(self._notifier, pending)
        return OperationResult.ok(value)

    @property
    def pending_notifications(self) -> tuple[Notification, ...]:
        """Notifications held for a caller that owns the transaction."""
        return tuple(self._pending)

    def _rollback(self, queued_before: int = 0) -> None:
        del self._pending[queued_before:]
        if self._auto_commit:
            self._session.rollback()
