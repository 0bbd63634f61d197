# gmao/domains/inv/routers.py

"""
API endpoints of the 'inv' domain: suppliers, parts, stock adjustments and
movement history.
"""

from typing import List, Optional
from datetime import date

from fastapi import APIRouter, Depends, status, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.database import get_session
from gmao.core import dependencies as deps
from gmao.core.exceptions import NotFoundError
from gmao.domains.usr import models as usr_models

from . import crud as inv_crud
from . import models as inv_models
from . import schemas as inv_schemas
from . import services as inv_services


router = APIRouter(
    tags=["Inventory Management"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. Fournisseurs (suppliers)
# =============================================================================
@router.post("/fournisseurs", response_model=inv_schemas.FournisseurRead, status_code=status.HTTP_201_CREATED)
async def create_fournisseur(
    fournisseur_in: inv_schemas.FournisseurCreate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    return await inv_crud.fournisseur.create(db, obj_in=fournisseur_in)


@router.get("/fournisseurs", response_model=List[inv_schemas.FournisseurRead])
async def read_fournisseurs(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await inv_crud.fournisseur.get_multi(db, skip=skip, limit=limit)


@router.get("/fournisseurs/{fournisseur_id}", response_model=inv_schemas.FournisseurDetail)
async def read_fournisseur(
    fournisseur_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    db_fournisseur = await inv_crud.fournisseur.get_with_pieces(db, fournisseur_id)
    if not db_fournisseur:
        raise NotFoundError("Fournisseur", fournisseur_id)
    return db_fournisseur


@router.put("/fournisseurs/{fournisseur_id}", response_model=inv_schemas.FournisseurRead)
async def update_fournisseur(
    fournisseur_id: int,
    fournisseur_in: inv_schemas.FournisseurUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    db_fournisseur = await inv_crud.fournisseur.get(db, id=fournisseur_id)
    if not db_fournisseur:
        raise NotFoundError("Fournisseur", fournisseur_id)
    return await inv_crud.fournisseur.update(db, db_obj=db_fournisseur, obj_in=fournisseur_in)


@router.delete("/fournisseurs/{fournisseur_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fournisseur(
    fournisseur_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    if not await inv_crud.fournisseur.get(db, id=fournisseur_id):
        raise NotFoundError("Fournisseur", fournisseur_id)
    await inv_crud.fournisseur.delete(db, id=fournisseur_id)
    return None


# =============================================================================
# 2. Pieces (parts)
# =============================================================================
@router.post("/pieces", response_model=inv_schemas.PieceRead, status_code=status.HTTP_201_CREATED)
async def create_piece(
    piece_in: inv_schemas.PieceCreate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    """A positive initial stock is recorded as a 'Stock initial' entry movement."""
    return await inv_crud.piece.create(db, obj_in=piece_in, user_id=current_user.id)


@router.get("/pieces", response_model=List[inv_schemas.PieceRead])
async def read_pieces(
    fournisseur_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    pieces, _ = await inv_crud.piece.get_filtered(
        db, filters={"fournisseur_id": fournisseur_id}, order_desc=False, skip=skip, limit=limit
    )
    return pieces


@router.get("/pieces/low-stock", response_model=List[inv_schemas.PieceRead])
async def read_low_stock_pieces(
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await inv_crud.piece.get_low_stock(db)


@router.get("/pieces/{piece_id}", response_model=inv_schemas.PieceRead)
async def read_piece(
    piece_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    db_piece = await inv_crud.piece.get(db, id=piece_id)
    if not db_piece:
        raise NotFoundError("Piece", piece_id)
    return db_piece


@router.put("/pieces/{piece_id}", response_model=inv_schemas.PieceRead)
async def update_piece(
    piece_id: int,
    piece_in: inv_schemas.PieceUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    db_piece = await inv_crud.piece.get(db, id=piece_id)
    if not db_piece:
        raise NotFoundError("Piece", piece_id)
    return await inv_crud.piece.update(db, db_obj=db_piece, obj_in=piece_in)


@router.delete("/pieces/{piece_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_piece(
    piece_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_staff_user),
):
    if not await inv_crud.piece.get(db, id=piece_id):
        raise NotFoundError("Piece", piece_id)
    await inv_crud.piece.delete(db, id=piece_id)
    return None


@router.patch("/pieces/{piece_id}/stock", response_model=inv_schemas.StockAdjustmentResult)
async def adjust_piece_stock(
    piece_id: int,
    adjustment: inv_schemas.StockAdjustment,
    db: AsyncSession = Depends(get_session),
    arq_redis_pool=Depends(deps.get_arq_redis),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """Manual stock entry or exit. An exit beyond the on-hand quantity fails with 400."""
    db_piece, mouvement = await inv_services.adjust_piece_stock(
        db,
        piece_id=piece_id,
        adjustment=adjustment,
        user_id=current_user.id,
        arq_redis_pool=arq_redis_pool,
    )
    return {"piece": db_piece, "mouvement": mouvement}


# =============================================================================
# 3. Mouvements de stock (read only)
# =============================================================================
@router.get("/mouvements", response_model=inv_schemas.MouvementPage)
async def read_mouvements(
    piece_id: Optional[int] = Query(None),
    type: Optional[inv_models.MouvementType] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    items, total = await inv_crud.mouvement_stock.get_history(
        db, piece_id=piece_id, type=type, date_from=date_from, date_to=date_to, skip=skip, limit=limit
    )
    return {"items": items, "total": total}


@router.get("/mouvements/summary", response_model=inv_schemas.MouvementSummary)
async def read_mouvements_summary(
    piece_id: Optional[int] = Query(None),
    type: Optional[inv_models.MouvementType] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await inv_crud.mouvement_stock.get_summary(
        db, piece_id=piece_id, type=type, date_from=date_from, date_to=date_to
    )
