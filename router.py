from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from datetime import timedelta
from typing import Annotated
import structlog

from database import get_db, get_owned, owned_query, utcnow, Expense, User
from schemas import (
    BulkDeleteResponse,
    CategoryStatsResponse,
    DateRangeQuery,
    ExpenseBulkCreate,
    ExpenseBulkDelete,
    ExpenseBulkResponse,
    ExpenseCreate,
    ExpenseDetail,
    ExpenseList,
    ExpenseResponse,
    ExpenseType,
    ExpenseUpdate,
    MAX_RECORD_ID,
    MessageResponse,
    SummaryQuery,
    SummaryResponse,
    TopQuery,
)
from auth import get_current_user

logger = structlog.get_logger(__name__)

RECENT_WINDOW = timedelta(days=30)

ExpenseId = Annotated[int, Path(ge=1, le=MAX_RECORD_ID)]

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Expense not found")


@router.post(
    "/add", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED
)
async def add_expense(
    expense: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_expense = Expense(**expense.model_dump(), user_id=current_user.id)
    db.add(db_expense)
    db.commit()
    db.refresh(db_expense)

    logger.info("expense_created", user_id=current_user.id, expense_id=db_expense.id)
    return {"message": "Expense added successfully", "expense": db_expense}


@router.post(
    "/add/bulk",
    response_model=ExpenseBulkResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_expenses_bulk(
    payload: ExpenseBulkCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_expenses = [
        Expense(**expense.model_dump(), user_id=current_user.id)
        for expense in payload.expenses
    ]
    db.add_all(db_expenses)
    db.commit()
    for db_expense in db_expenses:
        db.refresh(db_expense)

    count = len(db_expenses)
    logger.info("expenses_bulk_created", user_id=current_user.id, count=count)
    return {
        "message": f"{count} expenses added successfully",
        "count": count,
        "expenses": db_expenses,
    }


@router.get("/recent", response_model=ExpenseList)
async def get_recent_expenses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    since = utcnow() - RECENT_WINDOW
    expenses = (
        owned_query(db, Expense, current_user.id)
        .filter(Expense.date >= since)
        .order_by(Expense.date.desc())
        .all()
    )
    return {"expenses": expenses}


@router.get("/date-range", response_model=ExpenseList)
async def get_expenses_by_date_range(
    params: Annotated[DateRangeQuery, Query()],
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expenses = (
        owned_query(db, Expense, current_user.id)
        .filter(Expense.date >= params.start_date, Expense.date <= params.end_date)
        .order_by(Expense.date.desc())
        .all()
    )
    return {"expenses": expenses}


@router.get("/top", response_model=ExpenseList)
async def get_top_expenses(
    params: Annotated[TopQuery, Query()],
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = owned_query(db, Expense, current_user.id)
    if params.type:
        query = query.filter(Expense.type == params.type)

    expenses = query.order_by(Expense.amount.desc()).limit(params.limit).all()
    return {"expenses": expenses}


@router.get("/all", response_model=ExpenseList)
async def get_all_expenses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expenses = (
        owned_query(db, Expense, current_user.id).order_by(Expense.date.desc()).all()
    )
    return {"expenses": expenses}


@router.post(
    "/duplicate/{expense_id}",
    response_model=ExpenseResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_expense(
    expense_id: ExpenseId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    original = get_owned(db, Expense, expense_id, current_user.id)
    if not original:
        raise _not_found()

    copy = Expense(
        title=f"{original.title} (Copy)",
        description=original.description,
        amount=original.amount,
        date=utcnow(),
        type=original.type,
        user_id=current_user.id,
    )
    db.add(copy)
    db.commit()
    db.refresh(copy)

    logger.info(
        "expense_duplicated",
        user_id=current_user.id,
        source_id=original.id,
        expense_id=copy.id,
    )
    return {"message": "Expense duplicated successfully", "expense": copy}


@router.delete("/bulk", response_model=BulkDeleteResponse)
async def delete_expenses_bulk(
    payload: ExpenseBulkDelete,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Ids that are missing or belong to someone else are skipped silently
    deleted_count = (
        owned_query(db, Expense, current_user.id)
        .filter(Expense.id.in_(payload.expense_ids))
        .delete(synchronize_session=False)
    )
    db.commit()

    logger.info(
        "expenses_bulk_deleted", user_id=current_user.id, count=deleted_count
    )
    return {
        "message": f"{deleted_count} expenses deleted successfully",
        "deleted_count": deleted_count,
    }


@router.get("/stats/summary", response_model=SummaryResponse)
async def get_summary(
    params: Annotated[SummaryQuery, Query()],
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = owned_query(
        db,
        Expense,
        current_user.id,
        Expense.type,
        func.sum(Expense.amount).label("total"),
        func.count(Expense.id).label("count"),
        func.avg(Expense.amount).label("average"),
    )
    if params.start_date:
        query = query.filter(Expense.date >= params.start_date)
    if params.end_date:
        query = query.filter(Expense.date <= params.end_date)

    breakdown = [row._asdict() for row in query.group_by(Expense.type).all()]
    totals = {item["type"]: item["total"] for item in breakdown}
    total_income = totals.get(ExpenseType.INCOME.value, 0.0)
    total_expenses = totals.get(ExpenseType.EXPENSE.value, 0.0)

    return {
        "summary": {
            "total_income": total_income,
            "total_expenses": total_expenses,
            "balance": total_income - total_expenses,
            "breakdown": breakdown,
        }
    }


@router.get("/stats/categories", response_model=CategoryStatsResponse)
async def get_category_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    total_amount = func.sum(Expense.amount).label("total_amount")
    rows = (
        owned_query(
            db,
            Expense,
            current_user.id,
            Expense.type,
            func.count(Expense.id).label("count"),
            total_amount,
            func.avg(Expense.amount).label("avg_amount"),
            func.max(Expense.amount).label("max_amount"),
            func.min(Expense.amount).label("min_amount"),
        )
        .group_by(Expense.type)
        .order_by(total_amount.desc())
        .all()
    )
    return {"categories": [row._asdict() for row in rows]}


@router.get("/{expense_id}", response_model=ExpenseDetail)
async def get_expense(
    expense_id: ExpenseId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expense = get_owned(db, Expense, expense_id, current_user.id)
    if not expense:
        raise _not_found()
    return {"expense": expense}


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: ExpenseId,
    changes: ExpenseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expense = get_owned(db, Expense, expense_id, current_user.id)
    if not expense:
        raise _not_found()

    for field, value in changes.model_dump(exclude_unset=True).items():
        setattr(expense, field, value)
    db.commit()
    db.refresh(expense)

    return {"message": "Expense updated successfully", "expense": expense}


@router.delete("/{expense_id}", response_model=MessageResponse)
async def delete_expense(
    expense_id: ExpenseId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expense = get_owned(db, Expense, expense_id, current_user.id)
    if not expense:
        raise _not_found()
    db.delete(expense)
    db.commit()
    return {"message": "Expense deleted successfully"}
