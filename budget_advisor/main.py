import logging
import os
from datetime import date
from decimal import Decimal

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from budget_advisor.goal_scheduler import create_goal_trackings
from budget_advisor.models import (
    Category,
    CategoryGroup,
    DebtPaymentComponent,
    Goal,
    GoalTracking,
    GoalType,
    MonthlyAllocation,
    Transaction,
    allocations_to_dicts,
)
from budget_advisor.recommendations import recommend_spending_and_goals

log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("budget_advisor")

app = FastAPI()

frontend_origin = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[frontend_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class GoalTypeValue:
    values = {item.value for item in GoalType}

    @classmethod
    def validate(cls, value: str) -> GoalType:
        normalized = value.strip().lower()
        if normalized not in cls.values:
            raise ValueError("Invalid goal type.")
        return GoalType(normalized)


class DebtPaymentComponentValue:
    values = {item.value for item in DebtPaymentComponent}

    @classmethod
    def validate(cls, value: str | None) -> DebtPaymentComponent | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized not in cls.values:
            raise ValueError("Invalid debt payment component.")
        return DebtPaymentComponent(normalized)


class TransactionPayload(BaseModel):
    id: str | None = None
    date: date
    amount: Decimal
    category: str | None = None

    def to_transaction(self) -> Transaction:
        category = self.category.strip() if self.category else None
        return Transaction(date=self.date, amount=self.amount, category=category, id=self.id)


class CategoryPayload(BaseModel):
    name: str
    id: str | None = None


class CategoryGroupPayload(BaseModel):
    name: str | None = None
    id: str | None = None
    categories: list[CategoryPayload] = []


class AllocationPayload(BaseModel):
    date: date
    planned_amount: Decimal
    actual_amount: Decimal = Decimal("0")


class GoalPayload(BaseModel):
    id: str
    type: str
    amount: Decimal
    target_date: str
    starting_balance: Decimal = Decimal("0")
    name: str | None = None
    debt_payment_component: str | None = None
    debt_interest_rate: Decimal | None = None
    allocations: list[AllocationPayload] | None = None

    @classmethod
    def validate_payload(cls, payload: "GoalPayload") -> "GoalPayload":
        payload.id = payload.id.strip()
        if not payload.id:
            raise ValueError("Goal id required.")
        GoalTypeValue.validate(payload.type)
        DebtPaymentComponentValue.validate(payload.debt_payment_component)
        return payload

    def to_goal(self) -> Goal:
        tracking = None
        if self.allocations:
            tracking = GoalTracking(
                starting_balance=self.starting_balance,
                allocations=tuple(
                    MonthlyAllocation(
                        date=item.date,
                        planned_amount=item.planned_amount,
                        actual_amount=item.actual_amount,
                    )
                    for item in sorted(self.allocations, key=lambda item: item.date)
                ),
            )
        return Goal(
            id=self.id,
            type=GoalTypeValue.validate(self.type),
            amount=self.amount,
            target_date=self.target_date,
            starting_balance=self.starting_balance,
            tracking=tracking,
            name=self.name,
            debt_payment_component=DebtPaymentComponentValue.validate(
                self.debt_payment_component
            ),
            debt_interest_rate=self.debt_interest_rate,
        )


class RecommendationPayload(BaseModel):
    transactions: list[TransactionPayload]
    goals: list[GoalPayload] = []
    category_groups: dict[str, CategoryGroupPayload] = {}
    today: date | None = None

    @classmethod
    def validate_payload(cls, payload: "RecommendationPayload") -> "RecommendationPayload":
        payload.goals = [GoalPayload.validate_payload(goal) for goal in payload.goals]
        goal_ids = [goal.id for goal in payload.goals]
        if len(goal_ids) != len(set(goal_ids)):
            raise ValueError("Goal ids must be unique.")
        return payload

    def to_category_groups(self) -> dict[str, CategoryGroup]:
        groups: dict[str, CategoryGroup] = {}
        for key, group in self.category_groups.items():
            name = (group.name or key).strip()
            groups[name] = CategoryGroup(
                name=name,
                id=group.id,
                categories=tuple(
                    Category(name=category.name.strip(), id=category.id)
                    for category in group.categories
                ),
            )
        return groups


class GoalTrackingPayload(BaseModel):
    goal: GoalPayload
    starting_balance: Decimal = Decimal("0")
    today: date | None = None


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/recommendations")
def create_recommendations(payload: RecommendationPayload) -> dict:
    try:
        payload = RecommendationPayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    result = recommend_spending_and_goals(
        [item.to_transaction() for item in payload.transactions],
        [goal.to_goal() for goal in payload.goals],
        payload.to_category_groups(),
        today=payload.today,
    )
    if result.survival_mode:
        logger.info("Recommendations computed in survival mode")
    return result.to_dict()


@app.post("/goals/tracking")
def create_goal_tracking(payload: GoalTrackingPayload) -> dict:
    try:
        goal_payload = GoalPayload.validate_payload(payload.goal)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    tracking = create_goal_trackings(
        goal_payload.to_goal(),
        payload.starting_balance,
        today=payload.today,
    )
    return {
        "goal_id": goal_payload.id,
        "starting_balance": float(tracking.starting_balance),
        "allocations": allocations_to_dicts(tracking.allocations),
    }
