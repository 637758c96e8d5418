import json
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from redis import Redis
from typing import List, Optional

from .. import schemas, crud
from ..auth import get_current_user_id, rate_limit
from ..database import get_db, get_redis_client
from ..errors import Forbidden, NotFound

router = APIRouter(tags=["Properties"])

ALL_PROPERTIES_KEY = "all_properties"


def property_cache_key(property_id: int) -> str:
    return f"property_{property_id}"


def _cache_ttl(request: Request) -> int:
    return request.app.state.settings.CACHE_TTL_SECONDS


@router.post("/properties/", response_model=schemas.PropertyRead, status_code=status.HTTP_201_CREATED)
def create_property(
        property: schemas.PropertyCreate,
        db: Session = Depends(get_db),
        redis_client: Redis = Depends(get_redis_client),
        user_id: int = Depends(get_current_user_id),
):
    # The caller becomes the landlord. A new property changes the listing, so drop it.
    redis_client.delete(ALL_PROPERTIES_KEY)
    return crud.create_property(db=db, property=property, landlord_id=user_id)


@router.get(
    "/properties/",
    response_model=List[schemas.PropertyRead],
    dependencies=[Depends(rate_limit(times=20, minutes=1))],
)
def read_properties(
        request: Request,
        skip: int = 0,
        limit: int = 100,
        state: Optional[str] = None,
        min_price: Optional[int] = Query(None, ge=0),
        max_price: Optional[int] = Query(None, ge=0),
        bedrooms: Optional[int] = Query(None, ge=1),
        db: Session = Depends(get_db),
        redis_client: Redis = Depends(get_redis_client),
):
    # Only the unfiltered default page is cached
    filters = {"state": state, "min_price": min_price, "max_price": max_price, "bedrooms": bedrooms}
    cacheable = skip == 0 and limit == 100 and all(v is None for v in filters.values())
    if cacheable:
        cached_properties = redis_client.get(ALL_PROPERTIES_KEY)
        if cached_properties:
            return json.loads(cached_properties)

    properties = crud.get_properties(db, skip=skip, limit=limit, **filters)
    properties_list = [schemas.PropertyRead.model_validate(p).model_dump(mode="json") for p in properties]

    if cacheable:
        redis_client.set(ALL_PROPERTIES_KEY, json.dumps(properties_list), ex=_cache_ttl(request))
    return properties_list


@router.get("/properties/mine", response_model=List[schemas.PropertyDetail])
def read_my_properties(
        skip: int = 0,
        limit: int = 100,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
):
    """
    The authenticated landlord's properties with their units, newest first.
    """
    return crud.get_properties_by_landlord(db, landlord_id=user_id, skip=skip, limit=limit)


@router.get("/properties/{property_id}", response_model=schemas.PropertyDetail)
def read_property(
        property_id: int,
        request: Request,
        db: Session = Depends(get_db),
        redis_client: Redis = Depends(get_redis_client),
):
    cache_key = property_cache_key(property_id)
    cached_property = redis_client.get(cache_key)
    if cached_property:
        return json.loads(cached_property)

    db_property = crud.get_property(db, property_id=property_id)
    if db_property is None:
        raise NotFound("Property not found")

    property_data = schemas.PropertyDetail.model_validate(db_property).model_dump(mode="json")
    redis_client.set(cache_key, json.dumps(property_data), ex=_cache_ttl(request))
    return property_data


@router.post(
    "/properties/{property_id}/units",
    response_model=schemas.UnitRead,
    status_code=status.HTTP_201_CREATED,
)
def create_unit(
        property_id: int,
        unit: schemas.UnitCreate,
        db: Session = Depends(get_db),
        redis_client: Redis = Depends(get_redis_client),
        user_id: int = Depends(get_current_user_id),
):
    db_property = crud.get_property(db, property_id=property_id)
    if db_property is None:
        raise NotFound("Property not found")
    if db_property.landlord_id != user_id:
        raise Forbidden("Only the landlord can add units to this property")

    db_unit = crud.create_unit(db=db, unit=unit, property_id=property_id)

    # The cached property detail embeds its units
    redis_client.delete(property_cache_key(property_id))
    return db_unit


@router.get("/units/{unit_id}", response_model=schemas.UnitRead)
def read_unit(unit_id: int, db: Session = Depends(get_db)):
    db_unit = crud.get_unit(db, unit_id=unit_id)
    if db_unit is None:
        raise NotFound("Unit not found")
    return db_unit
