import logging

from fastapi import APIRouter, Depends, HTTPException

from travelflow.deps import get_trip
from travelflow.repository import TripRepository
from travelflow.schemas import ExpenseIn

logger = logging.getLogger("travelflow")

router = APIRouter()


@router.get("/trips/{trip_id}/expenses")
def list_expenses(repo: TripRepository = Depends(get_trip)):
    return [e.to_document() for e in repo.expenses]


@router.post("/trips/{trip_id}/expenses", status_code=201)
def add_expense(data: ExpenseIn, repo: TripRepository = Depends(get_trip)):
    if data.payer not in repo.settings.users:
        # Accepted as-is; such amounts are shared but credited to nobody
        logger.warning(
            "Expense payer is not a traveler",
            extra={"extra_data": {"trip_id": repo.current_trip_id, "payer": data.payer}},
        )
    expense = repo.add_expense(data.amount, data.title, data.payer)
    return expense.to_document()


@router.delete("/trips/{trip_id}/expenses/{expense_id}", status_code=204)
def delete_expense(expense_id: int, repo: TripRepository = Depends(get_trip)):
    if not repo.delete_expense(expense_id):
        raise HTTPException(status_code=404, detail="Expense not found")
    return None
