"""JSON rendering of domain models for API responses (camelCase keys)."""

from typing import Any, Dict, Iterable, List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def dump(model: BaseModel, **kwargs: Any) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, **kwargs)


def dump_all(models: Iterable[BaseModel], **kwargs: Any) -> List[Dict[str, Any]]:
    return [dump(model, **kwargs) for model in models]


class CamelModel(BaseModel):
    """Request body accepting camelCase keys (snake_case also accepted)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
