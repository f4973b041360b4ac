"""
Finance Store

The local-first state container. It holds every entity collection, loads
them from local storage at construction and hands each mutation to the
sync queue.

DESIGN DECISION: The store is constructed explicitly and passed to whoever
needs it (views, the sync worker's owner, summaries). There is no module
level instance, so tests build as many independent stores as they like.

Domain actions (contributions, bill payments, loan repayments, budget
changes) are expressed as full-record updates, so the backend only ever
sees create, update and delete.
"""

from decimal import Decimal
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from kwachalite.audit import AuditLogger
from kwachalite.config import get_settings
from kwachalite.models.finance import (
    ENTITY_MODELS,
    Bill,
    BillStatus,
    BudgetFrequency,
    Category,
    Client,
    EntityType,
    FinanceRecord,
    Loan,
    LoanStatus,
    Product,
    Quote,
    SavingsGoal,
    Transaction,
)
from kwachalite.models.sync import MutationOutcome, MutationResult, SyncOperation
from kwachalite.services.local import LocalStorageInterface
from kwachalite.store.collection import EntityCollection
from kwachalite.store.defaults import default_categories
from kwachalite.sync.queue import SyncQueue


_ENTITY_BY_MODEL: dict[type[FinanceRecord], EntityType] = {
    model: entity for entity, model in ENTITY_MODELS.items()
}


def _revise(record: FinanceRecord, **changes: Any) -> FinanceRecord:
    """Copy of a record with changes applied, re-validated by its model."""
    data = record.model_dump()
    data.update(changes)
    return type(record).model_validate(data)


class FinanceStore:
    """
    All finance collections plus the domain actions on them.

    Usage:
        store = FinanceStore(storage, queue)
        store.transactions.add(Transaction(...))
        store.contribute_to_goal(goal_id, Decimal("50"))
    """

    def __init__(
        self,
        storage: LocalStorageInterface,
        queue: SyncQueue,
        audit_logger: Optional[AuditLogger] = None,
        seed_default_categories: Optional[bool] = None,
    ):
        self._queue = queue
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger("kwachalite.store")

        def make(entity: EntityType) -> EntityCollection:
            return EntityCollection(entity, storage, queue, audit_logger)

        self.transactions: EntityCollection[Transaction] = make(EntityType.TRANSACTIONS)
        self.categories: EntityCollection[Category] = make(EntityType.CATEGORIES)
        self.bills: EntityCollection[Bill] = make(EntityType.BILLS)
        self.loans: EntityCollection[Loan] = make(EntityType.LOANS)
        self.savings_goals: EntityCollection[SavingsGoal] = make(EntityType.SAVINGS_GOALS)
        self.clients: EntityCollection[Client] = make(EntityType.CLIENTS)
        self.products: EntityCollection[Product] = make(EntityType.PRODUCTS)
        self.quotes: EntityCollection[Quote] = make(EntityType.QUOTES)

        self._collections: dict[EntityType, EntityCollection] = {
            EntityType.TRANSACTIONS: self.transactions,
            EntityType.CATEGORIES: self.categories,
            EntityType.BILLS: self.bills,
            EntityType.LOANS: self.loans,
            EntityType.SAVINGS_GOALS: self.savings_goals,
            EntityType.CLIENTS: self.clients,
            EntityType.PRODUCTS: self.products,
            EntityType.QUOTES: self.quotes,
        }

        if seed_default_categories is None:
            seed_default_categories = get_settings().store.seed_default_categories
        if seed_default_categories and not self.categories.loaded_from_storage:
            self.categories.replace_all(default_categories())
            # Queued like any other create so a later remote refresh cannot
            # replace them with an empty table
            for category in self.categories.all():
                self._queue.enqueue(
                    EntityType.CATEGORIES,
                    SyncOperation.CREATE,
                    category.id,
                    category.to_payload(),
                )
            self._logger.info("default_categories_seeded", count=len(self.categories))

    @property
    def queue(self) -> SyncQueue:
        return self._queue

    def collection(self, entity: EntityType) -> EntityCollection:
        return self._collections[entity]

    # -------------------------------------------------------------------------
    # Generic mutations
    # -------------------------------------------------------------------------

    def _collection_for(self, record: FinanceRecord) -> EntityCollection:
        entity = _ENTITY_BY_MODEL.get(type(record))
        if entity is None:
            raise TypeError(f"Not a stored entity: {type(record).__name__}")
        return self._collections[entity]

    def add(self, record: FinanceRecord) -> MutationResult:
        return self._collection_for(record).add(record)

    def update(self, record: FinanceRecord) -> MutationResult:
        return self._collection_for(record).update(record)

    def delete(self, entity: EntityType, record_id: str) -> MutationResult:
        return self._collections[entity].delete(record_id)

    def replace_collection(
        self,
        entity: EntityType,
        rows: list[dict[str, Any]],
    ) -> bool:
        """
        Replace a collection with rows pulled from the backend.

        Skipped (returns False) while the queue still holds entries for
        this collection, so a pull never overwrites unsynced local edits.
        Rows that fail validation are dropped with a warning.
        """
        pending = self._queue.pending_for(entity)
        if pending:
            self._logger.info(
                "refresh_skipped_pending_changes",
                entity=entity.value,
                pending=pending,
            )
            if self._audit_logger:
                self._audit_logger.log_refresh_skipped(entity.value, pending)
            return False

        collection = self._collections[entity]
        records = []
        for row in rows:
            try:
                records.append(collection.model.model_validate(row))
            except ValidationError as e:
                self._logger.warning(
                    "remote_row_dropped",
                    entity=entity.value,
                    row_id=row.get("id"),
                    error=str(e),
                )
        collection.replace_all(records)
        if self._audit_logger:
            self._audit_logger.log_collection_refreshed(entity.value, len(records))
        return True

    # -------------------------------------------------------------------------
    # Domain actions
    # -------------------------------------------------------------------------

    def _missing(self, entity: EntityType, record_id: str, operation: str) -> MutationResult:
        self._logger.warning("record_not_found", entity=entity.value, entity_id=record_id)
        if self._audit_logger:
            self._audit_logger.log_entity_not_found(entity.value, record_id, operation)
        return MutationResult(
            outcome=MutationOutcome.NOT_FOUND,
            entity=entity,
            entity_id=record_id,
        )

    def contribute_to_goal(self, goal_id: str, amount: Decimal) -> MutationResult:
        """Add money to a savings goal."""
        if amount <= 0:
            raise ValueError("Contribution must be positive")
        goal = self.savings_goals.get(goal_id)
        if goal is None:
            return self._missing(EntityType.SAVINGS_GOALS, goal_id, "contribute")
        return self.savings_goals.update(
            _revise(goal, current_amount=goal.current_amount + amount)
        )

    def purchase_goal_item(self, goal_id: str, item_id: str) -> MutationResult:
        """
        Mark a goal item purchased and add its price to the saved amount.

        Buying an already-purchased item changes nothing and queues nothing.
        """
        goal = self.savings_goals.get(goal_id)
        if goal is None:
            return self._missing(EntityType.SAVINGS_GOALS, goal_id, "purchase_item")
        item = goal.find_item(item_id)
        if item is None:
            return self._missing(EntityType.SAVINGS_GOALS, f"{goal_id}/{item_id}", "purchase_item")
        if item.purchased:
            return MutationResult(
                outcome=MutationOutcome.APPLIED,
                entity=EntityType.SAVINGS_GOALS,
                entity_id=goal_id,
                record=goal,
            )

        items = [
            existing.model_copy(update={"purchased": True}) if existing.id == item_id else existing
            for existing in goal.items
        ]
        return self.savings_goals.update(
            _revise(goal, items=items, current_amount=goal.current_amount + item.price)
        )

    def mark_bill_paid(self, bill_id: str) -> MutationResult:
        bill = self.bills.get(bill_id)
        if bill is None:
            return self._missing(EntityType.BILLS, bill_id, SyncOperation.UPDATE.value)
        return self.bills.update(_revise(bill, status=BillStatus.PAID))

    def record_loan_payment(self, loan_id: str, amount: Decimal) -> MutationResult:
        """Reduce the remaining balance; a loan paid down to zero becomes PAID."""
        if amount <= 0:
            raise ValueError("Payment must be positive")
        loan = self.loans.get(loan_id)
        if loan is None:
            return self._missing(EntityType.LOANS, loan_id, "payment")
        if amount > loan.remaining_amount:
            raise ValueError(
                f"Payment {amount} exceeds remaining amount {loan.remaining_amount}"
            )

        remaining = loan.remaining_amount - amount
        status = LoanStatus.PAID if remaining == 0 else loan.status
        return self.loans.update(_revise(loan, remaining_amount=remaining, status=status))

    def set_category_budget(
        self,
        category_id: str,
        amount: Optional[Decimal],
        frequency: BudgetFrequency = BudgetFrequency.MONTHLY,
    ) -> MutationResult:
        """
        Set or clear (amount=None) a category's budget.

        Raises:
            ValidationError: If the category is an income category
        """
        category = self.categories.get(category_id)
        if category is None:
            return self._missing(EntityType.CATEGORIES, category_id, "set_budget")
        return self.categories.update(
            _revise(
                category,
                budget=amount,
                budget_frequency=frequency if amount is not None else None,
            )
        )
