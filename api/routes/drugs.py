"""
api/routes/drugs.py -- Drug catalog routes for the Pharmabolt REST API.

Routes:
  GET    /drugs?limit=&offset=   -- one page of drugs, by name ascending (public)
  GET    /drugs/{drug_id}        -- single drug (public)
  POST   /drugs                  -- create (admin)
  PUT    /drugs/{drug_id}        -- partial update (admin)
  DELETE /drugs/{drug_id}        -- hard delete, returns the removed row (admin)

PUT has PATCH semantics: only the fields present in the body are written.
A rename re-runs the case-insensitive name check; other updates do not.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from api.models import DrugCreate, DrugEnvelope, DrugListEnvelope, DrugOut, DrugUpdate
from api.params import Page, parse_id
from auth.dependencies import require_admin
from catalog.models import Drug
from catalog.store import DrugStore
from core.db import get_connection
from core.errors import Conflict, Internal, InvalidInput, NotFound

router = APIRouter()


def get_drug_store(conn: Connection = Depends(get_connection)) -> DrugStore:
    return DrugStore(conn)


def _name_conflict(name: str) -> Conflict:
    return Conflict(f"Drug with name {name} already exists.")


def _load(store: DrugStore, drug_id: int) -> Drug:
    drug = store.get_drug(drug_id)
    if drug is None:
        raise NotFound(f"No drug with id {drug_id} was found")
    return drug


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------


@router.get("/drugs", response_model=DrugListEnvelope)
def list_drugs(page: Page = Depends(), store: DrugStore = Depends(get_drug_store)) -> DrugListEnvelope:
    """Offset pagination only: no total count, no stability under concurrent writes."""
    drugs = store.list_drugs(limit=page.limit, offset=page.offset)
    return DrugListEnvelope(data=[DrugOut.from_drug(d) for d in drugs])


@router.get("/drugs/{drug_id}", response_model=DrugEnvelope)
def get_drug(drug_id: str, store: DrugStore = Depends(get_drug_store)) -> DrugEnvelope:
    drug = _load(store, parse_id(drug_id))
    return DrugEnvelope(data=DrugOut.from_drug(drug))


# ---------------------------------------------------------------------------
# Admin writes
# ---------------------------------------------------------------------------


@router.post("/drugs", response_model=DrugEnvelope, dependencies=[Depends(require_admin)])
def create_drug(body: DrugCreate, store: DrugStore = Depends(get_drug_store)) -> DrugEnvelope:
    if store.name_taken(body.name):
        raise _name_conflict(body.name)
    try:
        drug_id = store.create_drug(
            Drug(name=body.name, description=body.description, price=body.price, stock=body.stock)
        )
    except IntegrityError as exc:
        raise _name_conflict(body.name) from exc
    created = store.get_drug(drug_id)
    if created is None:
        raise Internal("Drug not found after write.")
    return DrugEnvelope(data=DrugOut.from_drug(created))


@router.put("/drugs/{drug_id}", response_model=DrugEnvelope, dependencies=[Depends(require_admin)])
def update_drug(drug_id: str, body: DrugUpdate, store: DrugStore = Depends(get_drug_store)) -> DrugEnvelope:
    """Write only the fields present in the body; the rest keep their values."""
    drug = _load(store, parse_id(drug_id))

    changes = body.changes()
    if not changes:
        raise InvalidInput("No fields to update.")

    if "name" in changes and store.name_taken(changes["name"], exclude_id=drug.id):
        raise _name_conflict(changes["name"])

    try:
        store.update_drug(drug.id, **changes)
    except IntegrityError as exc:
        raise _name_conflict(changes.get("name", drug.name)) from exc
    return DrugEnvelope(data=DrugOut.from_drug(_load(store, drug.id)))


@router.delete("/drugs/{drug_id}", response_model=DrugEnvelope, dependencies=[Depends(require_admin)])
def delete_drug(drug_id: str, store: DrugStore = Depends(get_drug_store)) -> DrugEnvelope:
    drug = _load(store, parse_id(drug_id))
    store.delete_drug(drug.id)
    return DrugEnvelope(data=DrugOut.from_drug(drug))
