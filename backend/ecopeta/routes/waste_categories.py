from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ecopeta.core.auth import get_current_admin
from ecopeta.database.deps import get_db
from ecopeta.models.user import User
from ecopeta.models.waste_category import WasteCategory
from ecopeta.schemas.common import envelope
from ecopeta.schemas.waste_category import WasteCategoryCreate, WasteCategoryOut, WasteCategoryUpdate

router = APIRouter(prefix="/waste-categories", tags=["Waste categories"])


def _name_taken(db: Session, name: str, exclude_id: int | None = None) -> bool:
    query = db.query(WasteCategory).filter(func.lower(WasteCategory.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(WasteCategory.id != exclude_id)
    return query.first() is not None


def get_category_or_404(db: Session, category_id: int, active_only: bool = False) -> WasteCategory:
    query = db.query(WasteCategory).filter(WasteCategory.id == category_id)
    if active_only:
        query = query.filter(WasteCategory.is_active.is_(True))
    category = query.first()
    if not category:
        raise HTTPException(status_code=404, detail="Waste category not found")
    return category


@router.get("/")
def list_categories(db: Session = Depends(get_db)):
    rows = (
        db.query(WasteCategory)
        .filter(WasteCategory.is_active.is_(True))
        .order_by(WasteCategory.name.asc())
        .all()
    )
    return envelope([WasteCategoryOut.model_validate(row) for row in rows], count=len(rows))


@router.get("/{category_id}")
def get_category(category_id: int, db: Session = Depends(get_db)):
    return envelope(WasteCategoryOut.model_validate(get_category_or_404(db, category_id, active_only=True)))


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_category(
    payload: WasteCategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    name = payload.name.strip()
    if not name or not payload.points_per_kg:
        raise HTTPException(status_code=400, detail="Please provide name and points_per_kg")
    if payload.points_per_kg < 0:
        raise HTTPException(status_code=400, detail="points_per_kg must not be negative")
    if _name_taken(db, name):
        raise HTTPException(status_code=400, detail="Waste category with this name already exists")

    category = WasteCategory(
        name=name,
        description=payload.description,
        icon_url=payload.icon_url,
        points_per_kg=payload.points_per_kg,
        is_active=True,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return envelope(WasteCategoryOut.model_validate(category))


@router.put("/{category_id}")
def update_category(
    category_id: int,
    payload: WasteCategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    category = get_category_or_404(db, category_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("name"):
        name = data["name"].strip()
        if _name_taken(db, name, exclude_id=category.id):
            raise HTTPException(status_code=400, detail="Waste category with this name already exists")
        data["name"] = name
    if data.get("points_per_kg") is not None and data["points_per_kg"] < 0:
        raise HTTPException(status_code=400, detail="points_per_kg must not be negative")

    for field, value in data.items():
        if value is not None:
            setattr(category, field, value)
    db.commit()
    db.refresh(category)
    return envelope(WasteCategoryOut.model_validate(category))


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    category = get_category_or_404(db, category_id)
    category.is_active = False
    db.commit()
    return {"success": True, "message": "Waste category deactivated", "data": {}}
