"""
Product catalog data models.

The catalog is read once at startup from products.json and never changes
afterwards (reload requires a restart).

Thread Safety:
    - All models are frozen dataclasses holding tuples
    - ProductCatalog is never mutated after load, so any request thread
      can read it without locks

products.json layout:
    {
      "products": [
        {
          "id": "brochure-a",
          "name": "Trifold Brochure",
          "description": "...",
          "campaignId": 101,
          "planId": 202,
          "thumbnail": "/images/brochure-a.jpg",          (optional)
          "sizes": [{"name": "A4", "documentId": 303, "label": "A4 (210 x 297 mm)"}],
          "variables": [
            {"name": "language", "label": "Language", "type": "select",
             "planObjectName": "Language", "planObjectType": "Variable",
             "required": true, "defaultValue": "EN",
             "options": [{"value": "EN", "label": "English"}]}
          ]
        }
      ]
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from core.exceptions import CatalogError, InvalidFieldValueError, ProductNotFoundError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

# Longest text value accepted from the form
MAX_TEXT_LENGTH = 500


class PlanObjectType(Enum):
    """How a customizable slot binds inside the uProduce plan."""

    VARIABLE = "Variable"
    ADOR = "ADOR"


@dataclass(frozen=True)
class PlanObjectBinding:
    """Named plan object a variable writes into."""

    name: str
    """Plan object name (e.g., 'Language')."""

    type: PlanObjectType
    """Binding type tag sent as PlanObjectType."""


@dataclass(frozen=True)
class SizeOption:
    """One page size a product can be produced in."""

    name: str
    """Size key submitted by the form (e.g., 'A4')."""

    document_id: Any
    """uProduce document reference used for this size."""

    label: str = ""
    """Human-readable label for the size selector."""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "documentId": self.document_id, "label": self.label}


@dataclass(frozen=True)
class SelectOption:
    """One choice of a select variable."""

    value: str
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "label": self.label}


@dataclass(frozen=True)
class _VariableBase:
    """Fields shared by every variable kind."""

    name: str
    """Form field key."""

    label: str = ""
    """Label shown next to the form field."""

    binding: Optional[PlanObjectBinding] = None
    """Plan object this variable customizes (None = UI/size-only field)."""

    required: bool = False
    """Whether an empty resolved value is rejected."""

    default_value: Optional[str] = None
    """Value used when the form does not submit one."""

    @property
    def is_bound(self) -> bool:
        """True if the variable produces a customization."""
        return self.binding is not None

    def _base_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "label": self.label,
            "type": self.kind,
            "required": self.required,
            "defaultValue": self.default_value,
        }
        if self.binding:
            data["planObjectName"] = self.binding.name
            data["planObjectType"] = self.binding.type.value
        return data


@dataclass(frozen=True)
class SelectVariable(_VariableBase):
    """Variable whose value must be one of a fixed list of options."""

    options: Tuple[SelectOption, ...] = field(default_factory=tuple)
    """Ordered options (never empty)."""

    kind = "select"

    def validate(self, value: str) -> str:
        """
        Check that value is one of the option values.

        Raises:
            InvalidFieldValueError: If value is not a known option
        """
        if value not in {option.value for option in self.options}:
            raise InvalidFieldValueError(self.name, "not one of the allowed options")
        return value

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data["options"] = [option.to_dict() for option in self.options]
        return data


@dataclass(frozen=True)
class TextVariable(_VariableBase):
    """Free text variable."""

    max_length: int = MAX_TEXT_LENGTH

    kind = "text"

    def validate(self, value: str) -> str:
        """Truncate value to max_length."""
        if len(value) > self.max_length:
            return value[:self.max_length]
        return value

    def to_dict(self) -> Dict[str, Any]:
        return self._base_dict()


Variable = Union[SelectVariable, TextVariable]


@dataclass(frozen=True)
class Product:
    """A customizable brochure template."""

    id: str
    name: str
    campaign_id: Any
    plan_id: Any
    sizes: Tuple[SizeOption, ...]
    variables: Tuple[Variable, ...]
    description: str = ""
    thumbnail: Optional[str] = None
    """Static thumbnail shipped with the catalog (skips generation)."""

    def find_size(self, size_name: str) -> Optional[SizeOption]:
        """Size option with the given name, or None."""
        for size in self.sizes:
            if size.name == size_name:
                return size
        return None

    def find_variable(self, name: str) -> Optional[Variable]:
        """Variable definition with the given form key, or None."""
        for variable in self.variables:
            if variable.name == name:
                return variable
        return None

    @property
    def default_size(self) -> SizeOption:
        """First size option (used for thumbnails)."""
        return self.sizes[0]

    def default_values(self) -> Dict[str, str]:
        """Form values consisting of every variable's default."""
        return {
            v.name: v.default_value
            for v in self.variables
            if v.default_value is not None
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to the products.json shape for the /api/products route."""
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "campaignId": self.campaign_id,
            "planId": self.plan_id,
            "sizes": [size.to_dict() for size in self.sizes],
            "variables": [variable.to_dict() for variable in self.variables],
        }
        if self.thumbnail:
            data["thumbnail"] = self.thumbnail
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        """
        Create a Product from a products.json entry.

        Raises:
            CatalogError: If required fields are missing or malformed
        """
        product_id = data.get("id")
        if not product_id or not isinstance(product_id, str):
            raise CatalogError("Product entry is missing a string 'id'")

        for key in ("campaignId", "planId"):
            if data.get(key) is None:
                raise CatalogError(f"Product '{product_id}' is missing '{key}'")

        sizes = tuple(
            SizeOption(
                name=str(size["name"]),
                document_id=size["documentId"],
                label=size.get("label", str(size["name"])),
            )
            for size in _require_list(data, "sizes", product_id)
        )
        if not sizes:
            raise CatalogError(f"Product '{product_id}' has no sizes")

        variables = tuple(
            _parse_variable(v, product_id) for v in data.get("variables", [])
        )

        return cls(
            id=product_id,
            name=data.get("name", data.get("title", product_id)),
            description=data.get("description", ""),
            campaign_id=data["campaignId"],
            plan_id=data["planId"],
            sizes=sizes,
            variables=variables,
            thumbnail=data.get("thumbnail"),
        )


def _require_list(data: Dict[str, Any], key: str, product_id: str) -> List[Dict[str, Any]]:
    value = data.get(key)
    if not isinstance(value, list):
        raise CatalogError(f"Product '{product_id}' field '{key}' must be a list")
    return value


def _parse_variable(data: Dict[str, Any], product_id: str) -> Variable:
    """Build the typed variable for one products.json variable entry."""
    name = data.get("name")
    if not name:
        raise CatalogError(f"Product '{product_id}' has a variable without 'name'")

    binding = None
    plan_name = data.get("planObjectName")
    plan_type = data.get("planObjectType")
    if plan_name and plan_type:
        try:
            binding = PlanObjectBinding(plan_name, PlanObjectType(plan_type))
        except ValueError:
            raise CatalogError(
                f"Variable '{name}' of '{product_id}' has unknown planObjectType '{plan_type}'"
            )

    default_value = data.get("defaultValue")
    common = {
        "name": name,
        "label": data.get("label", name),
        "binding": binding,
        "required": bool(data.get("required", False)),
        "default_value": None if default_value is None else str(default_value),
    }

    kind = data.get("type", "text")
    if kind == "select":
        options = tuple(
            SelectOption(value=str(o["value"]), label=str(o.get("label", o["value"])))
            for o in data.get("options", [])
        )
        if not options:
            raise CatalogError(f"Select variable '{name}' of '{product_id}' has no options")
        return SelectVariable(options=options, **common)
    if kind == "text":
        return TextVariable(**common)

    raise CatalogError(f"Variable '{name}' of '{product_id}' has unknown type '{kind}'")


class ProductCatalog:
    """
    Immutable product lookup, loaded once at startup.

    Usage:
        catalog = ProductCatalog.load("products.json")
        product = catalog.get("brochure-a")       # raises ProductNotFoundError
        product = catalog.find("brochure-a")      # returns None when absent
    """

    def __init__(self, products: List[Product]):
        by_id: Dict[str, Product] = {}
        for product in products:
            if product.id in by_id:
                raise CatalogError(f"Duplicate product id: {product.id}")
            by_id[product.id] = product
        self._products = by_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductCatalog":
        """Build the catalog from the parsed products.json document."""
        entries = data.get("products")
        if not isinstance(entries, list):
            raise CatalogError("Catalog must contain a 'products' list")
        return cls([Product.from_dict(entry) for entry in entries])

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ProductCatalog":
        """
        Load the catalog from a JSON file.

        Raises:
            CatalogError: If the file is missing, unreadable or invalid
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise CatalogError(f"Catalog file not found: {path}", source=str(path))
        except json.JSONDecodeError as e:
            raise CatalogError(f"Invalid JSON in catalog: {e}", source=str(path))

        catalog = cls.from_dict(data)
        logger.info(f"Loaded {len(catalog)} product(s) from {path.name}")
        return catalog

    def get(self, product_id: str) -> Product:
        """
        Look up a product.

        Raises:
            ProductNotFoundError: If no product has this id
        """
        product = self._products.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def find(self, product_id: str) -> Optional[Product]:
        """Look up a product, returning None when absent."""
        return self._products.get(product_id)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._products

    def __iter__(self) -> Iterator[Product]:
        return iter(self._products.values())

    def __len__(self) -> int:
        return len(self._products)

    def to_dict(self) -> Dict[str, Any]:
        return {"products": [product.to_dict() for product in self]}
