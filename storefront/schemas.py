"""
Pydantic Schemas for Menu Documents, Cart Lines and API Payloads

Stored documents keep camelCase keys (isAvailable, preparationTime,
createdAt, ...) so the remote and local copies share one shape.
Python code uses snake_case attribute names; both are accepted on input.

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS
# =============================================================================

class CategoryColor(str, Enum):
    """Display colour tokens a category can use."""
    RED = "red"
    GREEN = "green"
    BLUE = "blue"
    PURPLE = "purple"
    YELLOW = "yellow"
    GRAY = "gray"

    @property
    def css_class(self) -> str:
        return f"bg-{self.value}-100 text-{self.value}-800"


class AvailabilityFilter(str, Enum):
    ALL = "all"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


# =============================================================================
# STORED DOCUMENTS
# =============================================================================

class DocumentModel(BaseModel):
    """Base for everything persisted as a document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> dict[str, Any]:
        """Convert to a JSON-compatible document with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)

    @classmethod
    def document_key(cls, name: str) -> str:
        """Map a field name or alias to its stored (camelCase) key."""
        field = cls.model_fields.get(name)
        if field is not None and field.alias:
            return field.alias
        return name


class MenuItemVariant(DocumentModel):
    """Alternate priced presentation of a menu item (e.g. portion size)."""
    id: str = Field(..., min_length=1)
    name: str
    price: float
    image: Optional[str] = None
    is_available: bool = True


class MenuItem(DocumentModel):
    """A dish on the menu."""
    id: Optional[str] = None
    name: str
    description: str = ""
    price: float
    category: str
    image: str = ""
    is_available: bool = True
    preparation_time: int = 10
    rating: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    variants: Optional[List[MenuItemVariant]] = None

    def find_variant(self, variant_id: str) -> Optional[MenuItemVariant]:
        for variant in self.variants or []:
            if variant.id == variant_id:
                return variant
        return None


class Category(DocumentModel):
    """A menu section. Items reference it by name."""
    id: Optional[str] = None
    name: str
    color: CategoryColor = CategoryColor.GRAY
    created_at: Optional[datetime] = None

    @field_validator("color", mode="before")
    @classmethod
    def parse_color(cls, v: Any) -> CategoryColor:
        """Accept a token, a legacy CSS class string, or fall back to gray."""
        if isinstance(v, CategoryColor):
            return v
        text = str(v or "").strip().lower()
        for color in CategoryColor:
            if text == color.value or text == color.css_class or f"-{color.value}-" in text:
                return color
        return CategoryColor.GRAY


# =============================================================================
# CART
# =============================================================================

class CartItem(DocumentModel):
    """One cart line: a snapshot of the item plus quantity and variant."""
    id: str
    name: str
    image: str = ""
    price: float
    category: str = ""
    quantity: int = Field(default=1, ge=1)
    selected_variant: Optional[MenuItemVariant] = None
    is_original: bool = True

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class CartSummary(BaseModel):
    """Cart lines with every derived total."""
    items: List[CartItem]
    total_items: int
    subtotal: float
    service_fee: float
    delivery_fee: float
    final_total: float


# =============================================================================
# FORMS
# =============================================================================

class MenuItemForm(BaseModel):
    """Raw admin form input; every field arrives as text."""
    name: str = ""
    description: str = ""
    price: str = ""
    category: str = ""
    preparation_time: str = ""
    image: str = ""
    variants: List[MenuItemVariant] = Field(default_factory=list)

    @field_validator("price", "preparation_time", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return "" if v is None else str(v)


class MenuItemDraft(BaseModel):
    """Validated, normalised menu item ready to be stored."""
    name: str
    description: str
    price: float
    category: str
    image: str
    preparation_time: int
    variants: Optional[List[MenuItemVariant]] = None

    def to_create_document(self) -> dict[str, Any]:
        """Document for a new item; new items start available and unrated."""
        return MenuItem(
            name=self.name,
            description=self.description,
            price=self.price,
            category=self.category,
            image=self.image,
            preparation_time=self.preparation_time,
            variants=self.variants,
            is_available=True,
            rating=0.0,
        ).to_document()

    def to_update_document(self) -> dict[str, Any]:
        """Partial document for an edit; availability and rating are left alone."""
        document = self.to_create_document()
        document.pop("isAvailable", None)
        document.pop("rating", None)
        # Clearing every variant must reach the stored copy
        document["variants"] = document.get("variants", [])
        return document


class VariantForm(BaseModel):
    name: str = ""
    price: str = ""
    image: str = ""

    @field_validator("price", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return "" if v is None else str(v)


class CategoryForm(BaseModel):
    name: str = ""
    color: CategoryColor = CategoryColor.GRAY


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class AvailabilityUpdate(BaseModel):
    is_available: bool


class CartLineRequest(BaseModel):
    """Identifies a cart line by menu item and optional variant."""
    item_id: str = Field(..., min_length=1)
    variant_id: Optional[str] = None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class CreatedResponse(BaseModel):
    success: bool = True
    id: str


class MenuSection(BaseModel):
    """A category with the items displayed under it."""
    key: str
    label: str
    css_class: str
    items: List[MenuItem]


class MenuStats(BaseModel):
    total: int
    available: int
    sold_out: int


class SyncResponse(BaseModel):
    success: bool
    synced: List[str]
    failed: List[str]
    error_message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None
    field: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    mode: str
    remote_store: str
    local_store: str
    timestamp: datetime
