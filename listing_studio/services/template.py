"""
Prompt templates with typed variables
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from listing_studio.core.exceptions import NotFoundError, ValidationError
from listing_studio.models.enums import AssetKind, TemplateCategory, VariableType
from listing_studio.models.product import Product
from listing_studio.models.template import PromptTemplate, TemplateVariable

logger = structlog.get_logger()

VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")
VARIABLE_NAME = re.compile(r"^\w+$")

# AUTO variables read one of these product fields
AUTO_FILL_SOURCES = {
    "product.title": "title",
    "product.category": "category",
    "product.asin": "asin",
}

# Placeholder names that fall back to a product field when left empty
PRODUCT_FALLBACKS = {
    "product_title": "title",
    "item_name": "title",
    "product_category": "category",
    "category": "category",
    "product_asin": "asin",
    "asin": "asin",
}

MAX_COPY_ATTEMPTS = 100


@dataclass
class RenderedTemplate:
    prompt: str
    missing_variables: List[str] = field(default_factory=list)
    variables: Dict[str, str] = field(default_factory=dict)


def render_template(prompt_text: str, values: Dict[str, str], product: Optional[Product] = None) -> str:
    """Replace every ``{{name}}`` placeholder; unknown names render empty"""

    def substitute(match):
        name = match.group(1)
        value = values.get(name) or ""
        if not value and product is not None and name in PRODUCT_FALLBACKS:
            value = getattr(product, PRODUCT_FALLBACKS[name]) or ""
        return value

    return VARIABLE_PATTERN.sub(substitute, prompt_text)


def template_matches_kind(template: PromptTemplate, kind: AssetKind) -> bool:
    return template.category in (TemplateCategory.BOTH.value, AssetKind(kind).value.lower())


class TemplateService:
    def __init__(self, db: Session):
        self.db = db

    def create_template(
        self,
        name: str,
        prompt_text: str,
        description: Optional[str] = None,
        category: TemplateCategory = TemplateCategory.BOTH,
        order: int = 0,
        variables: Optional[List[Dict[str, Any]]] = None,
    ) -> PromptTemplate:
        if not prompt_text or not prompt_text.strip():
            raise ValidationError("prompt_text must not be empty")
        template = PromptTemplate(
            name=name,
            description=description,
            prompt_text=prompt_text,
            category=TemplateCategory(category).value,
            order=order,
            is_active=True,
        )
        template.variables = self._build_variables(variables or [])
        self.db.add(template)
        self._commit_unique(name)
        self.db.refresh(template)
        logger.info("template created", template_id=str(template.id), name=name, variables=len(template.variables))
        return template

    def list_templates(
        self, category: Optional[TemplateCategory] = None, include_inactive: bool = False
    ) -> List[PromptTemplate]:
        query = self.db.query(PromptTemplate)
        if category and TemplateCategory(category) != TemplateCategory.BOTH:
            query = query.filter(
                PromptTemplate.category.in_([TemplateCategory(category).value, TemplateCategory.BOTH.value])
            )
        if not include_inactive:
            query = query.filter(PromptTemplate.is_active.is_(True))
        return query.order_by(PromptTemplate.order, PromptTemplate.updated_at.desc()).all()

    def get_template(self, template_id: UUID) -> PromptTemplate:
        template = self.db.get(PromptTemplate, template_id)
        if not template:
            raise NotFoundError(f"Template {template_id} not found")
        return template

    def update_template(
        self,
        template_id: UUID,
        variables: Optional[List[Dict[str, Any]]] = None,
        **fields: Any,
    ) -> PromptTemplate:
        """
        Update the given fields; a ``variables`` list replaces the whole set
        """
        template = self.get_template(template_id)
        allowed = {"name", "description", "prompt_text", "category", "order", "is_active"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValidationError(f"Unknown template fields: {', '.join(sorted(unknown))}")
        if "prompt_text" in fields and not (fields["prompt_text"] or "").strip():
            raise ValidationError("prompt_text must not be empty")
        if "category" in fields:
            fields["category"] = TemplateCategory(fields["category"]).value

        for key, value in fields.items():
            setattr(template, key, value)
        if variables is not None:
            template.variables = self._build_variables(variables)
        self._commit_unique(template.name)
        self.db.refresh(template)
        logger.info("template updated", template_id=str(template_id), fields=sorted(fields))
        return template

    def deactivate_template(self, template_id: UUID) -> PromptTemplate:
        """Soft delete: the template stays readable but is hidden from listings"""
        template = self.get_template(template_id)
        template.is_active = False
        self.db.commit()
        self.db.refresh(template)
        logger.info("template deactivated", template_id=str(template_id))
        return template

    def duplicate_template(self, template_id: UUID) -> PromptTemplate:
        original = self.get_template(template_id)
        name = self._copy_name(original.name)
        copy = PromptTemplate(
            name=name,
            description=original.description,
            prompt_text=original.prompt_text,
            category=original.category,
            order=original.order,
            is_active=True,
        )
        copy.variables = [
            TemplateVariable(
                name=v.name,
                display_name=v.display_name,
                type=v.type,
                is_required=v.is_required,
                default_value=v.default_value,
                options=list(v.options or []),
                auto_fill_source=v.auto_fill_source,
                order=v.order,
            )
            for v in original.variables
        ]
        self.db.add(copy)
        self._commit_unique(name)
        self.db.refresh(copy)
        logger.info("template duplicated", template_id=str(template_id), copy_id=str(copy.id), name=name)
        return copy

    def render(
        self,
        template_id: UUID,
        values: Optional[Dict[str, str]] = None,
        product_id: Optional[UUID] = None,
    ) -> RenderedTemplate:
        """
        Render a template for preview or generation.

        Caller values win, then variable defaults; AUTO variables are filled
        from the product when one is given. Required variables that end up
        empty are reported by display name.
        """
        template = self.get_template(template_id)
        product = None
        if product_id:
            product = self.db.get(Product, product_id)
            if not product:
                raise NotFoundError(f"Product {product_id} not found")

        final: Dict[str, str] = {}
        for variable in template.variables:
            value = (values or {}).get(variable.name) or variable.default_value or ""
            if variable.type == VariableType.AUTO.value and product is not None:
                attribute = AUTO_FILL_SOURCES.get(variable.auto_fill_source or "")
                if attribute:
                    value = getattr(product, attribute) or ""
            if (
                variable.type == VariableType.DROPDOWN.value
                and value
                and variable.options
                and value not in variable.options
            ):
                raise ValidationError(
                    f"'{value}' is not an option for {variable.display_name}",
                    details={"variable": variable.name, "options": list(variable.options)},
                )
            final[variable.name] = value
        for name, value in (values or {}).items():
            final.setdefault(name, value or "")

        missing = [v.display_name for v in template.variables if v.is_required and not final.get(v.name)]
        return RenderedTemplate(
            prompt=render_template(template.prompt_text, final, product),
            missing_variables=missing,
            variables=final,
        )

    def _build_variables(self, variables: List[Dict[str, Any]]) -> List[TemplateVariable]:
        seen = set()
        built = []
        for index, entry in enumerate(variables):
            name = (entry.get("name") or "").strip()
            if not VARIABLE_NAME.match(name):
                raise ValidationError(f"Invalid variable name: '{name}'")
            if name in seen:
                raise ValidationError(f"Duplicate variable name: '{name}'")
            seen.add(name)
            try:
                var_type = VariableType(entry.get("type") or VariableType.TEXT)
            except ValueError:
                raise ValidationError(
                    f"Unknown variable type: {entry.get('type')}",
                    details={"allowed": [t.value for t in VariableType]},
                )
            auto_fill_source = entry.get("auto_fill_source")
            if var_type == VariableType.AUTO and auto_fill_source not in AUTO_FILL_SOURCES:
                raise ValidationError(
                    f"AUTO variable '{name}' needs an auto fill source",
                    details={"allowed": sorted(AUTO_FILL_SOURCES)},
                )
            built.append(TemplateVariable(
                name=name,
                display_name=entry.get("display_name") or name,
                type=var_type.value,
                is_required=entry.get("is_required", True),
                default_value=entry.get("default_value"),
                options=list(entry.get("options") or []),
                auto_fill_source=auto_fill_source,
                order=entry["order"] if entry.get("order") is not None else index,
            ))
        return built

    def _copy_name(self, name: str) -> str:
        candidate = f"{name} (Copy)"
        for suffix in range(2, MAX_COPY_ATTEMPTS + 2):
            if not self.db.query(PromptTemplate.id).filter(PromptTemplate.name == candidate).first():
                return candidate
            candidate = f"{name} (Copy {suffix})"
        raise ValidationError(f"Too many copies of template '{name}'")

    def _commit_unique(self, name: str) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError(f"A template named '{name}' already exists", details={"name": name})
