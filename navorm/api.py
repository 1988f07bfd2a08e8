"""Read-only HTTP view of a built relationship model."""

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request

from navorm.errors import UnknownEntityError, UnknownRelationshipError
from navorm.model import RelationshipModel
from navorm.orm_types import Cardinality

router = APIRouter(prefix="/api", tags=["model"])


def get_model(request: Request) -> RelationshipModel:
    return request.app.state.model


def _entity_payload(model, descriptor):
    payload = descriptor.model_dump(mode="json")
    payload["key"] = descriptor.key.name
    payload["foreign_key_attributes"] = [
        fk.model_dump(mode="json") for fk in model.foreign_keys(descriptor.name)
    ]
    return payload


@router.get("/entities")
def list_entities(model: RelationshipModel = Depends(get_model)):
    return [_entity_payload(model, d) for d in model.registry]


@router.get("/entities/{name}")
def get_entity(name: str, model: RelationshipModel = Depends(get_model)):
    try:
        descriptor = model.registry.lookup(name)
    except UnknownEntityError as e:
        raise HTTPException(status_code=404, detail=str(e))
    payload = _entity_payload(model, descriptor)
    payload["relationships"] = [r.id for r in model.relationships_for(name)]
    return payload


@router.get("/relationships")
def list_relationships(
    model: RelationshipModel = Depends(get_model),
    entity: str = Query(None),
    cardinality: Cardinality = Query(None),
):
    relationships = model.relationships
    if entity:
        relationships = [r for r in relationships if entity in (r.principal, r.dependent)]
    if cardinality:
        relationships = [r for r in relationships if r.cardinality is cardinality]
    return [r.model_dump(mode="json") for r in relationships]


@router.get("/relationships/{relationship_id}")
def get_relationship(relationship_id: str, model: RelationshipModel = Depends(get_model)):
    try:
        return model.relationship(relationship_id).model_dump(mode="json")
    except UnknownRelationshipError as e:
        raise HTTPException(status_code=404, detail=str(e))


def create_app(model: RelationshipModel) -> FastAPI:
    app = FastAPI(title="NavORM relationship model")
    app.state.model = model
    app.include_router(router)
    return app
