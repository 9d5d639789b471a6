"""Car schemas — validation rules for payloads and list queries.

The same rules back the JSON API, the spreadsheet import and the UI forms
(which receive the constants through /api/schema/car).
"""

from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from core.exceptions import ValidationError
from .config import get_config
from .constants import CAR_COLORS, FIELD_LABELS, MIN_YEAR, SORT_COLUMNS, SORT_DIRECTIONS, max_year


def _reject_bool(value):
    # bool is an int subclass; a checkbox value is never a price or a year
    if isinstance(value, bool):
        raise PydanticCustomError('number_type', 'Input should be a valid number')
    return value


class _CarRules(BaseModel):
    """Field rules shared by the create and update schemas."""

    model_config = ConfigDict(extra='ignore')

    @field_validator('sku', 'model', 'make', check_fields=False)
    @classmethod
    def required_text(cls, value: str, info) -> str:
        value = value.strip()
        if not value:
            raise PydanticCustomError('required', '{label} is required',
                                      {'label': FIELD_LABELS[info.field_name]})
        return value

    @field_validator('price', 'year', mode='before', check_fields=False)
    @classmethod
    def numeric(cls, value: Any) -> Any:
        return _reject_bool(value)

    @field_validator('price', check_fields=False)
    @classmethod
    def positive_price(cls, value: float) -> float:
        if value <= 0:
            raise PydanticCustomError('price_positive', 'Price must be a positive number')
        return value

    @field_validator('year', check_fields=False)
    @classmethod
    def year_in_range(cls, value: int) -> int:
        if value < MIN_YEAR:
            raise PydanticCustomError('year_min', 'Year must be at least {min_year}', {'min_year': MIN_YEAR})
        upper = max_year()
        if value > upper:
            raise PydanticCustomError('year_max', 'Year cannot exceed {max_year}', {'max_year': upper})
        return value

    @field_validator('color', check_fields=False)
    @classmethod
    def known_color(cls, value: str) -> str:
        if value not in CAR_COLORS:
            raise PydanticCustomError('color_enum', 'Color must be one of: {colors}',
                                      {'colors': ', '.join(CAR_COLORS)})
        return value


class CreateCarRequest(_CarRules):
    """Payload for a new car (API body or spreadsheet row)."""

    # Missing text fields fall through to required_text
    sku: str = Field('', validate_default=True)
    model: str = Field('', validate_default=True)
    make: str = Field('', validate_default=True)
    price: float = Field(allow_inf_nan=False)
    year: int
    color: str


class UpdateCarRequest(_CarRules):
    """Full replacement of the editable fields. The SKU comes from the URL."""

    model: str = Field('', validate_default=True)
    make: str = Field('', validate_default=True)
    price: float = Field(allow_inf_nan=False)
    year: int
    color: str


def format_errors(exc: PydanticValidationError) -> List[str]:
    """Render pydantic errors as 'field.path: message' strings."""
    messages = []
    for err in exc.errors():
        path = '.'.join(str(part) for part in err['loc'])
        prefix = f'{path}: ' if path else ''
        messages.append(f"{prefix}{err['msg']}")
    return messages


def validate_car(data: Any, schema: Type[BaseModel] = CreateCarRequest) -> Tuple[Optional[Dict], List[str]]:
    """Validate an arbitrary object against a car schema.

    Returns:
        (payload, []) on success, (None, messages) on failure
    """
    try:
        return schema.model_validate(data).model_dump(), []
    except PydanticValidationError as e:
        return None, format_errors(e)


def parse_car(data: Any, schema: Type[BaseModel] = CreateCarRequest) -> Dict:
    """Like validate_car() but raises ValidationError on failure."""
    payload, errors = validate_car(data, schema)
    if errors:
        raise ValidationError('Invalid car data', errors)
    return payload


# ============== List queries ==============

class SortOption(BaseModel):
    field: str
    direction: str = 'asc'

    @field_validator('field')
    @classmethod
    def known_field(cls, value: str) -> str:
        if value not in SORT_COLUMNS:
            raise PydanticCustomError('sort_field', 'Invalid sort field')
        return value

    @field_validator('direction')
    @classmethod
    def known_direction(cls, value: str) -> str:
        if value not in SORT_DIRECTIONS:
            raise PydanticCustomError('sort_direction', "Sort direction must be either 'asc' or 'desc'")
        return value


class CarListQuery(BaseModel):
    """Pagination, sorting and filters for the inventory list and export."""

    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    offset: int = Field(0, ge=0)
    limit: Optional[int] = Field(None, ge=1)
    sort: List[SortOption] = Field(default_factory=list)

    # Text filters - partial, case-insensitive
    sku: Optional[str] = None
    model: Optional[str] = None
    make: Optional[str] = None

    # Range filters
    price_min: Optional[float] = Field(None, alias='priceMin', gt=0, allow_inf_nan=False)
    price_max: Optional[float] = Field(None, alias='priceMax', gt=0, allow_inf_nan=False)
    year_min: Optional[int] = Field(None, alias='yearMin')
    year_max: Optional[int] = Field(None, alias='yearMax')

    # Exact match
    color: Optional[str] = None

    @field_validator('sort', mode='before')
    @classmethod
    def split_sort(cls, value: Any) -> Any:
        """'createdAt:desc,price' -> [{field: createdAt, direction: desc}, {field: price, direction: asc}]"""
        if not isinstance(value, str):
            return value
        options = []
        for item in value.split(','):
            if not item.strip():
                continue
            field, _, direction = item.strip().partition(':')
            options.append({'field': field.strip(), 'direction': direction.strip().lower() or 'asc'})
        return options

    @field_validator('color')
    @classmethod
    def known_color(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in CAR_COLORS:
            raise PydanticCustomError('color_enum', 'Color must be one of: {colors}',
                                      {'colors': ', '.join(CAR_COLORS)})
        return value

    def filters(self) -> Dict[str, Any]:
        """Only the filters that were supplied, keyed by repository name."""
        keys = ('sku', 'model', 'make', 'price_min', 'price_max', 'year_min', 'year_max', 'color')
        return {k: getattr(self, k) for k in keys if getattr(self, k) is not None}


def parse_list_query(args) -> CarListQuery:
    """Build a CarListQuery from request.args.

    Blank values are dropped; limit defaults to the configured page size and
    is capped at the maximum page size.

    Raises:
        ValidationError: on malformed offset, limit, sort or filters
    """
    cfg = get_config()
    raw = {k: v.strip() for k, v in args.items() if isinstance(v, str) and v.strip() != ''}
    try:
        query = CarListQuery.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError('Invalid query parameters', format_errors(e))
    query.limit = min(query.limit or cfg.DEFAULT_PAGE_SIZE, cfg.MAX_PAGE_SIZE)
    return query


def schema_description() -> Dict[str, Any]:
    """Constants the UI needs to mirror the server-side rules."""
    cfg = get_config()
    return {
        'colors': list(CAR_COLORS),
        'minYear': MIN_YEAR,
        'maxYear': max_year(),
        'sortFields': list(SORT_COLUMNS),
        'defaultPageSize': cfg.DEFAULT_PAGE_SIZE,
        'maxPageSize': cfg.MAX_PAGE_SIZE,
        'maxUploadRows': cfg.MAX_UPLOAD_ROWS,
        'maxUploadBytes': cfg.MAX_UPLOAD_BYTES,
    }
