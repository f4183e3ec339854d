from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RuleInput(BaseModel):
    column: str = Field(default="", examples=["TAG"])
    relation: str = Field(default="", examples=["EQUALS"])
    condition: str | int | float | None = Field(default="", examples=["summer"])
    conditionObjectId: str | None = Field(default=None, examples=["gid://shopify/MetafieldDefinition/9"])


class RuleSetInput(BaseModel):
    appliedDisjunctively: bool = Field(default=False)
    rules: list[RuleInput] = Field(default_factory=list)


class ImageInput(BaseModel):
    src: str = Field(default="", examples=["https://cdn.example.com/summer.jpg"])
    altText: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _compat_alt(cls, data: Any) -> Any:
        """Accept ``alt`` as an alias of ``altText``."""
        if isinstance(data, dict) and "alt" in data and "altText" not in data:
            data = {**data, "altText": data["alt"]}
        return data


class SeoInput(BaseModel):
    title: str | None = None
    description: str | None = None


class CollectionCreateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(default="", examples=["Summer Collection"])
    handle: str | None = Field(default=None, examples=["summer-collection"])
    descriptionHtml: str | None = None
    sortOrder: str | None = Field(default=None, examples=["BEST_SELLING"])
    templateSuffix: str | None = None
    image: ImageInput | None = None
    seo: SeoInput | None = None
    products: list[str] = Field(default_factory=list)
    ruleSet: RuleSetInput | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ExportFilterRequest(BaseModel):
    collectionType: Literal["manual", "smart", "all"] = Field(default="all")
    limit: int = Field(default=1000, ge=1, le=1000)
    publishedOnly: bool = Field(default=False)


class BulkStatusRequest(BaseModel):
    bulkOperationId: str | None = Field(
        default=None,
        description="Bulk operation GID; omit to read the shop's current bulk mutation.",
    )
