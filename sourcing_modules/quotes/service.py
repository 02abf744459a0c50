"""
Quote Service (``sourcing_modules.quotes.service``).

Responsibility
--------------
The quote lifecycle: supplier submission, admin margin-and-send, client
acceptance (which creates the order) and rejection, plus the scheduled
auto-quote generator and best-value comparison.

Architecture position
---------------------
**Modules layer** -- service facade.  Calls the RFQ and order modules
inside its own transaction; each public method is one ``_run``.

Invariants enforced
-------------------
* ``final_price == round2(supplier_price * (1 + margin_percent / 100))``:
  both are written together, in ``_create_quote`` and ``_send``.
* At most one quote per (RFQ, supplier).  A custom submission overrides
  an open auto quote in place; any other existing quote is a conflict.
* Acceptance is atomic: quote ACCEPTED, order created, open siblings
  REJECTED and RFQ CLOSED commit together or not at all.  The quote's
  status compare-and-swap lets exactly one of two racing accepts win.
* Notifications go out only after commit.
"""

from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from sourcing_config import MarketplaceConfig, get_active_config
from sourcing_config.schema import MAX_AUTO_QUOTE_BATCH
from sourcing_kernel.db.guards import compare_and_swap, lock_for_update
from sourcing_kernel.db.types import require_margin_percent, round_money
from sourcing_kernel.domain.actor import Actor
from sourcing_kernel.domain.clock import Clock
from sourcing_kernel.domain.pricing import apply_margin
from sourcing_kernel.domain.results import OperationResult
from sourcing_kernel.exceptions import (
    ConcurrentModificationError,
    DuplicateQuoteError,
    EntityNotFoundError,
    InsufficientCreditError,
    InvalidStatusTransitionError,
    PermissionDeniedError,
    QuoteNotAvailableError,
    StateConflictError,
    ValidationError,
)
from sourcing_kernel.logging_config import LogContext, get_logger
from sourcing_kernel.models.product import ProductModel
from sourcing_kernel.models.user import UserModel, UserRole
from sourcing_kernel.services.base import BaseService
from sourcing_kernel.services.notification import NotificationSink
from sourcing_modules.credit.selector import CreditSelector
from sourcing_modules.margins.selector import MarginSelector
from sourcing_modules.margins.service import ensure_system_config
from sourcing_modules.orders.models import OrderLine
from sourcing_modules.orders.service import create_order
from sourcing_modules.quotes.auto_quote import AutoQuotePlan, lead_time_label, plan_rfq
from sourcing_modules.quotes.comparison import best_value_quote_id
from sourcing_modules.quotes.models import (
    AutoQuoteRunSummary,
    Quote,
    QuoteAcceptance,
    QuoteCandidate,
    QuoteLine,
    QuoteSubmission,
    QuoteType,
)
from sourcing_modules.quotes.orm import QuoteLineModel, QuoteModel
from sourcing_modules.quotes.pricing import (
    require_charges,
    summary_lead_time,
    supplier_price,
    validate_line_items,
)
from sourcing_modules.quotes.workflows import QUOTE_WORKFLOW
from sourcing_modules.rfq.orm import RFQModel
from sourcing_modules.rfq.service import close_expired_rfqs, move_rfq
from sourcing_modules.rfq.workflows import RFQ_WORKFLOW

logger = get_logger("modules.quotes.service")

OPEN_QUOTE_STATUSES = ("PENDING_ADMIN", "SENT_TO_CLIENT")
QUOTABLE_RFQ_STATUSES = ("OPEN", "QUOTED")
AUTO_QUOTE_NOTE = "Generated automatically from catalog pricing"


class QuoteService(BaseService):
    """Quote lifecycle and auto-quote generation."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: MarketplaceConfig | None = None,
        notifier: NotificationSink | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, clock=clock, notifier=notifier, auto_commit=auto_commit)
        self._config = config or get_active_config()
        self._margins = MarginSelector(session)
        self._credit = CreditSelector(session)

    # =========================================================================
    # Supplier submission
    # =========================================================================

    def submit_supplier_quote(
        self,
        rfq_id: UUID,
        supplier_id: UUID,
        line_items: Sequence[Any],
        shipping_cost: Any = Decimal("0"),
        tax_amount: Any = Decimal("0"),
        notes: str | None = None,
    ) -> OperationResult[QuoteSubmission]:
        """
        Record a supplier's quote on an RFQ.

        ``line_items`` holds ``QuoteLineInput`` values or dicts with the
        same keys.  Partial quotes are allowed; the result reports quoted
        vs. requested item counts.
        """

        def body() -> QuoteSubmission:
            supplier = self._session.get(UserModel, supplier_id)
            if supplier is None:
                raise EntityNotFoundError("User", supplier_id)
            if supplier.role != UserRole.SUPPLIER.value:
                raise PermissionDeniedError(supplier_id, "submit_supplier_quote", rfq_id)

            rfq = self._session.get(RFQModel, rfq_id)
            if rfq is None:
                raise EntityNotFoundError("RFQ", rfq_id)
            if rfq.status not in QUOTABLE_RFQ_STATUSES:
                raise StateConflictError(
                    "RFQ", rfq_id, rfq.status, None,
                    message=f"RFQ {rfq_id} is {rfq.status} and no longer accepts quotes",
                )
            if rfq.expires_at is not None and rfq.expires_at <= self._clock.now():
                raise StateConflictError(
                    "RFQ", rfq_id, rfq.status, None,
                    message=f"RFQ {rfq_id} expired at {rfq.expires_at.isoformat()}",
                )

            lines = validate_line_items(line_items)
            shipping, tax = require_charges(shipping_cost, tax_amount)
            total_items = len(rfq.items)
            quoted_items = min(sum(1 for line in lines if line.is_quoted), total_items)

            existing = self._session.execute(
                select(QuoteModel)
                .where(QuoteModel.rfq_id == rfq_id, QuoteModel.supplier_id == supplier_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()

            replaced = False
            if existing is None:
                quote = self._create_quote(
                    rfq_id=rfq_id,
                    supplier_id=supplier_id,
                    quote_type=QuoteType.CUSTOM,
                    lines=lines,
                    shipping=shipping,
                    tax=tax,
                    lead_time=summary_lead_time(lines),
                    total_items=total_items,
                    notes=notes,
                )
            else:
                if (
                    existing.quote_type != QuoteType.AUTO.value
                    or existing.status not in OPEN_QUOTE_STATUSES
                ):
                    raise DuplicateQuoteError(existing.id, existing.status, existing.quote_type)
                quote = self._override_auto_quote(
                    existing, lines, shipping, tax, total_items, notes, supplier_id,
                )
                replaced = True

            logger.info(
                "quote_submitted",
                extra={
                    "quote_id": str(quote.id),
                    "rfq_id": str(rfq_id),
                    "supplier_id": str(supplier_id),
                    "supplier_price": str(quote.supplier_price),
                    "quoted_item_count": quoted_items,
                    "total_item_count": total_items,
                    "replaced_auto_quote": replaced,
                },
            )
            return QuoteSubmission(
                quote=quote.to_dto(),
                quoted_item_count=quoted_items,
                total_item_count=total_items,
                replaced_auto_quote=replaced,
            )

        with LogContext.bind(actor_id=supplier_id):
            return self._run("quote_submit", body, rfq_id=rfq_id, supplier_id=supplier_id)

    def _create_quote(
        self,
        *,
        rfq_id: UUID,
        supplier_id: UUID,
        quote_type: QuoteType,
        lines: Sequence[QuoteLine],
        shipping: Decimal,
        tax: Decimal,
        lead_time: str | None,
        total_items: int,
        notes: str | None,
        actor_id: UUID | None = None,
    ) -> QuoteModel:
        price = supplier_price(lines, shipping, tax)
        quote = QuoteModel(
            id=uuid4(),
            rfq_id=rfq_id,
            supplier_id=supplier_id,
            status=QUOTE_WORKFLOW.initial_state,
            quote_type=quote_type.value,
            supplier_price=price,
            margin_percent=Decimal("0"),
            final_price=apply_margin(price, Decimal("0")),
            shipping_cost=shipping,
            tax_amount=tax,
            lead_time=lead_time,
            quoted_item_count=min(sum(1 for line in lines if line.is_quoted), total_items),
            total_item_count=total_items,
            notes=notes,
            created_at=self._clock.now(),
            created_by_id=actor_id or supplier_id,
        )
        self._session.add(quote)
        self._append_lines(quote, lines, actor_id or supplier_id)
        self._session.flush()
        return quote

    def _override_auto_quote(
        self,
        existing: QuoteModel,
        lines: Sequence[QuoteLine],
        shipping: Decimal,
        tax: Decimal,
        total_items: int,
        notes: str | None,
        supplier_id: UUID,
    ) -> QuoteModel:
        price = supplier_price(lines, shipping, tax)
        quote = compare_and_swap(
            self._session, QuoteModel, existing.id, "status", existing.status,
            {
                "status": QUOTE_WORKFLOW.initial_state,
                "quote_type": QuoteType.CUSTOM.value,
                "supplier_price": price,
                "margin_percent": Decimal("0"),
                "final_price": apply_margin(price, Decimal("0")),
                "shipping_cost": shipping,
                "tax_amount": tax,
                "lead_time": summary_lead_time(lines),
                "quoted_item_count": min(sum(1 for line in lines if line.is_quoted), total_items),
                "total_item_count": total_items,
                "notes": notes,
                "updated_by_id": supplier_id,
            },
        )
        # Old lines go first so the new ones can reuse their line numbers
        quote.lines.clear()
        self._session.flush()
        self._append_lines(quote, lines, supplier_id)
        self._session.flush()
        logger.info(
            "auto_quote_overridden",
            extra={"quote_id": str(quote.id), "previous_status": existing.status},
        )
        return quote

    @staticmethod
    def _append_lines(quote: QuoteModel, lines: Sequence[QuoteLine], actor_id: UUID) -> None:
        for line in lines:
            quote.lines.append(QuoteLineModel(
                id=uuid4(),
                line_number=line.line_number,
                product_id=line.product_id,
                unit_price=line.unit_price,
                quantity=line.quantity,
                lead_time=line.lead_time,
                is_alternative=line.is_alternative,
                is_quoted=line.is_quoted,
                created_by_id=actor_id,
            ))

    # =========================================================================
    # Admin: margin and send
    # =========================================================================

    def apply_margin_and_send(
        self,
        quote_id: UUID,
        margin_percent: Any,
        actor_id: UUID | None = None,
    ) -> OperationResult[Quote]:
        """Set the margin, recompute the final price and send to the client."""

        def body() -> Quote:
            value = require_margin_percent(margin_percent)
            quote = lock_for_update(self._session, QuoteModel, quote_id)
            if quote is None:
                raise EntityNotFoundError("Quote", quote_id)
            return self._send(quote, value, actor_id).to_dto()

        with LogContext.bind(quote_id=quote_id, actor_id=actor_id):
            return self._run("quote_send", body, quote_id=quote_id)

    def _send(self, quote: QuoteModel, margin: Decimal, actor_id: UUID | None) -> QuoteModel:
        target = "SENT_TO_CLIENT"
        current = quote.status
        if not QUOTE_WORKFLOW.can_transition(current, target):
            raise InvalidStatusTransitionError("Quote", quote.id, current, target)

        final_price = apply_margin(quote.supplier_price, margin)
        sent = compare_and_swap(
            self._session, QuoteModel, quote.id, "status", current,
            {
                "status": target,
                "margin_percent": margin,
                "final_price": final_price,
                "updated_by_id": actor_id,
            },
        )
        move_rfq(self._session, sent.rfq_id, "QUOTED", already_ok=True)
        rfq = self._session.get(RFQModel, sent.rfq_id)

        logger.info(
            "quote_sent",
            extra={
                "quote_id": str(sent.id),
                "margin_percent": str(margin),
                "supplier_price": str(sent.supplier_price),
                "final_price": str(final_price),
            },
        )
        self._notify(
            "quote_sent",
            rfq.client_id,
            quote_id=str(sent.id),
            rfq_id=str(sent.rfq_id),
            final_price=str(final_price),
        )
        return sent

    # =========================================================================
    # Client: accept / reject
    # =========================================================================

    def accept_quote(self, quote_id: UUID, actor: Actor) -> OperationResult[QuoteAcceptance]:
        """
        Accept a SENT_TO_CLIENT quote and create its order.

        Non-prepay clients must have ``final_price`` of available credit
        when credit enforcement is on.
        """

        def body() -> QuoteAcceptance:
            quote = lock_for_update(self._session, QuoteModel, quote_id)
            if quote is None:
                raise EntityNotFoundError("Quote", quote_id)
            rfq = lock_for_update(self._session, RFQModel, quote.rfq_id)
            if rfq is None:
                raise EntityNotFoundError("RFQ", quote.rfq_id)
            if not actor.is_admin and actor.actor_id != rfq.client_id:
                raise PermissionDeniedError(actor.actor_id, "accept_quote", quote_id)
            if quote.status != "SENT_TO_CLIENT":
                raise QuoteNotAvailableError(quote_id, quote.status)
            if rfq.status in RFQ_WORKFLOW.terminal_states:
                raise QuoteNotAvailableError(quote_id, quote.status, reason=f"RFQ is {rfq.status}")
            if rfq.expires_at is not None and rfq.expires_at <= self._clock.now():
                raise QuoteNotAvailableError(quote_id, quote.status, reason="RFQ expired")

            client = lock_for_update(self._session, UserModel, rfq.client_id)
            if client is None:
                raise EntityNotFoundError("User", rfq.client_id)
            amount = round_money(quote.final_price)
            self._check_credit(client, amount)

            accepted = compare_and_swap(
                self._session, QuoteModel, quote_id, "status", "SENT_TO_CLIENT",
                {"status": "ACCEPTED", "updated_by_id": actor.actor_id},
            )
            order = create_order(
                self._session,
                quote_id=quote_id,
                rfq_id=rfq.id,
                client_id=rfq.client_id,
                supplier_id=accepted.supplier_id,
                amount=amount,
                supplier_amount=round_money(accepted.supplier_price),
                lines=[
                    OrderLine(
                        line_number=line.line_number,
                        product_id=line.product_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        lead_time=line.lead_time,
                    )
                    for line in accepted.lines
                    if line.is_quoted
                ],
                initial_status=self._config.order_initial_status,
                created_at=self._clock.now(),
                actor_id=actor.actor_id,
            )

            rejected = self._reject_open_siblings(rfq.id, quote_id, actor.actor_id)
            move_rfq(self._session, rfq.id, "CLOSED")

            logger.info(
                "quote_accepted",
                extra={
                    "quote_id": str(quote_id),
                    "order_id": str(order.id),
                    "amount": str(amount),
                    "rejected_sibling_count": len(rejected),
                },
            )
            self._notify(
                "quote_accepted", rfq.client_id,
                quote_id=str(quote_id), order_id=str(order.id), amount=str(amount),
            )
            self._notify(
                "quote_accepted", accepted.supplier_id,
                quote_id=str(quote_id), order_id=str(order.id),
            )
            for sibling_id, sibling_supplier in rejected:
                self._notify("quote_rejected", sibling_supplier, quote_id=str(sibling_id))

            return QuoteAcceptance(
                quote=accepted.to_dto(),
                order_id=order.id,
                order_amount=amount,
                rejected_sibling_ids=tuple(sibling_id for sibling_id, _ in rejected),
            )

        with LogContext.bind(quote_id=quote_id, actor_id=actor.actor_id):
            return self._run("quote_accept", body, quote_id=quote_id)

    def _check_credit(self, client: UserModel, amount: Decimal) -> None:
        if not self._config.enforce_credit_on_acceptance or client.is_prepay:
            return
        available = self._credit.available_credit(client.id)
        if amount > available:
            raise InsufficientCreditError(client.id, str(amount), str(available))

    def _reject_open_siblings(
        self,
        rfq_id: UUID,
        accepted_id: UUID,
        actor_id: UUID,
    ) -> list[tuple[UUID, UUID]]:
        siblings = self._session.execute(
            select(QuoteModel.id, QuoteModel.status, QuoteModel.supplier_id).where(
                QuoteModel.rfq_id == rfq_id,
                QuoteModel.id != accepted_id,
                QuoteModel.status.in_(OPEN_QUOTE_STATUSES),
            )
        ).all()
        rejected = []
        for sibling_id, status, sibling_supplier in siblings:
            compare_and_swap(
                self._session, QuoteModel, sibling_id, "status", status,
                {"status": "REJECTED", "updated_by_id": actor_id},
            )
            rejected.append((sibling_id, sibling_supplier))
        return rejected

    def reject_quote(self, quote_id: UUID, actor: Actor | None = None) -> OperationResult[Quote]:
        """
        Reject a PENDING_ADMIN or SENT_TO_CLIENT quote.

        With an ``actor``, only the RFQ's client or an admin may reject.
        """

        def body() -> Quote:
            quote = lock_for_update(self._session, QuoteModel, quote_id)
            if quote is None:
                raise EntityNotFoundError("Quote", quote_id)
            if actor is not None and not actor.is_admin:
                rfq = self._session.get(RFQModel, quote.rfq_id)
                if rfq is None or actor.actor_id != rfq.client_id:
                    raise PermissionDeniedError(actor.actor_id, "reject_quote", quote_id)

            current = quote.status
            if not QUOTE_WORKFLOW.can_transition(current, "REJECTED"):
                raise InvalidStatusTransitionError("Quote", quote_id, current, "REJECTED")
            rejected = compare_and_swap(
                self._session, QuoteModel, quote_id, "status", current,
                {
                    "status": "REJECTED",
                    "updated_by_id": actor.actor_id if actor is not None else None,
                },
            )
            logger.info(
                "quote_rejected",
                extra={"quote_id": str(quote_id), "from_status": current},
            )
            self._notify("quote_rejected", rejected.supplier_id, quote_id=str(quote_id))
            return rejected.to_dto()

        with LogContext.bind(quote_id=quote_id):
            return self._run("quote_reject", body, quote_id=quote_id)

    # =========================================================================
    # Comparison
    # =========================================================================

    def best_value_for_rfq(self, rfq_id: UUID) -> OperationResult[UUID | None]:
        """Best-value quote among those sent to the client; None below two."""

        def body() -> UUID | None:
            rows = self._session.execute(
                select(QuoteModel)
                .where(QuoteModel.rfq_id == rfq_id, QuoteModel.status == "SENT_TO_CLIENT")
                .order_by(QuoteModel.created_at, QuoteModel.id)
            ).scalars().all()
            return best_value_quote_id([
                QuoteCandidate(quote_id=row.id, price=row.final_price, lead_time=row.lead_time)
                for row in rows
            ])

        return self._run("quote_best_value", body, rfq_id=rfq_id)

    # =========================================================================
    # Auto quotes
    # =========================================================================

    def generate_auto_quotes(
        self,
        now: datetime | None = None,
        limit: int | None = None,
        close_expired: bool = True,
    ) -> OperationResult[AutoQuoteRunSummary]:
        """
        Quote catalog prices on OPEN RFQs nobody answered in time.

        Expired RFQs are closed first (unless ``close_expired`` is False)
        and never quoted.  At most ``limit`` RFQs, oldest first, are
        examined; the default comes from ``auto_quote.batch_limit``.

        Each RFQ is claimed once (``auto_quote_triggered``) whether or not
        any quote comes out of it.  Generated quotes are sent to the
        client straight away with their weighted margin.
        """

        def body() -> AutoQuoteRunSummary:
            batch = self._config.auto_quote.batch_limit if limit is None else limit
            valid_batch = isinstance(batch, int) and not isinstance(batch, bool)
            if not valid_batch or not 1 <= batch <= MAX_AUTO_QUOTE_BATCH:
                raise ValidationError(
                    f"limit must be an integer within [1, {MAX_AUTO_QUOTE_BATCH}]", field="limit",
                )
            run_at = now or self._clock.now()
            closed_expired = close_expired_rfqs(self._session, run_at) if close_expired else 0

            settings_row = ensure_system_config(self._session, self._config)
            if not settings_row.auto_quote_enabled:
                logger.info("auto_quote_disabled", extra={"closed_expired_rfqs": closed_expired})
                return AutoQuoteRunSummary(enabled=False, closed_expired_rfqs=closed_expired)

            cutoff = run_at - timedelta(minutes=settings_row.auto_quote_delay_minutes)
            rfqs = self._session.execute(
                select(RFQModel)
                .where(
                    RFQModel.status == "OPEN",
                    RFQModel.auto_quote_triggered.is_(False),
                    RFQModel.created_at <= cutoff,
                    or_(RFQModel.expires_at.is_(None), RFQModel.expires_at > run_at),
                )
                .order_by(RFQModel.created_at, RFQModel.id)
                .limit(batch)
            ).scalars().all()

            category_settings = self._margins.category_settings()
            global_default = self._margins.global_default(self._config.default_margin_percent)

            eligible = 0
            generated_items = 0
            skipped_existing = 0
            skipped_unavailable = 0
            quote_ids: list[UUID] = []

            for rfq in rfqs:
                try:
                    claimed = compare_and_swap(
                        self._session, RFQModel, rfq.id, "auto_quote_triggered", False,
                        {"auto_quote_triggered": True},
                    )
                except ConcurrentModificationError:
                    logger.info("auto_quote_rfq_already_claimed", extra={"rfq_id": str(rfq.id)})
                    continue
                eligible += 1

                items = claimed.to_dto().items
                product_ids = [item.product_id for item in items if item.product_id is not None]
                products = {
                    product.id: product
                    for product in self._session.execute(
                        select(ProductModel).where(ProductModel.id.in_(product_ids))
                    ).scalars()
                } if product_ids else {}
                existing_suppliers = self._session.execute(
                    select(QuoteModel.supplier_id).where(QuoteModel.rfq_id == rfq.id)
                ).scalars().all()

                plan = plan_rfq(
                    items,
                    products,
                    existing_supplier_ids=existing_suppliers,
                    category_settings=category_settings,
                    global_default=global_default,
                    include_limited_stock=settings_row.auto_quote_include_limited_stock,
                    default_lead_time_days=settings_row.auto_quote_lead_time_days,
                )
                skipped_existing += plan.skipped_existing_quote_suppliers
                skipped_unavailable += plan.skipped_unavailable_items

                for quote_plan in plan.quotes:
                    quote = self._create_auto_quote(rfq.id, quote_plan, len(items))
                    self._send(quote, quote_plan.margin_percent, actor_id=None)
                    quote_ids.append(quote.id)
                    generated_items += len(quote_plan.lines)

            summary = AutoQuoteRunSummary(
                enabled=True,
                closed_expired_rfqs=closed_expired,
                fetched_rfqs=len(rfqs),
                eligible_rfqs=eligible,
                generated_quotes=len(quote_ids),
                generated_quote_items=generated_items,
                skipped_existing_quote_suppliers=skipped_existing,
                skipped_unavailable_items=skipped_unavailable,
                quote_ids=tuple(quote_ids),
            )
            logger.info(
                "auto_quote_run_completed",
                extra={
                    "closed_expired_rfqs": summary.closed_expired_rfqs,
                    "fetched_rfqs": summary.fetched_rfqs,
                    "eligible_rfqs": summary.eligible_rfqs,
                    "generated_quotes": summary.generated_quotes,
                    "skipped_unavailable_items": summary.skipped_unavailable_items,
                },
            )
            return summary

        return self._run("auto_quote_run", body)

    def _create_auto_quote(self, rfq_id: UUID, plan: AutoQuotePlan, total_items: int) -> QuoteModel:
        lines = tuple(
            QuoteLine(
                line_number=index + 1,
                product_id=line.product_id,
                unit_price=line.unit_price,
                quantity=Decimal(line.quantity),
                lead_time=lead_time_label(line.lead_time_days),
                is_alternative=False,
                is_quoted=True,
            )
            for index, line in enumerate(plan.lines)
        )
        return self._create_quote(
            rfq_id=rfq_id,
            supplier_id=plan.supplier_id,
            quote_type=QuoteType.AUTO,
            lines=lines,
            shipping=Decimal("0"),
            tax=Decimal("0"),
            lead_time=plan.lead_time_label,
            total_items=total_items,
            notes=AUTO_QUOTE_NOTE,
            actor_id=plan.supplier_id,
        )
