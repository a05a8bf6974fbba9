"""
Prompt resolution and prompt version management
"""
from typing import Dict, Optional
from uuid import UUID
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import structlog

from listing_studio.core.exceptions import MissingPromptError, NotFoundError, ValidationError
from listing_studio.models.asset_type import AssetType, PromptOverride, PromptVersion
from listing_studio.models.enums import AssetKind
from listing_studio.models.product import Product
from listing_studio.services.template import TemplateService, template_matches_kind

logger = structlog.get_logger()

MAX_VERSION_ATTEMPTS = 5


def render_prompt(template: str, product: Product) -> str:
    """
    Substitute product fields into a prompt template.

    Only the known placeholders are replaced, with literal values; any
    other ``{...}`` text is left as written.
    """
    values = {
        "{product_name}": product.title or "",
        "{product_title}": product.title or "",
        "{category}": product.category or "",
        "{asin}": product.asin or "",
    }
    for placeholder, value in values.items():
        template = template.replace(placeholder, value)
    return template


class PromptService:
    def __init__(self, db: Session):
        self.db = db

    def resolve(
        self,
        product_id: UUID,
        asset_type_id: UUID,
        additional_instructions: Optional[str] = None,
        template_id: Optional[UUID] = None,
        template_variables: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Effective prompt for a (product, asset type) pair.

        Product override first, then the asset type default; neither present
        raises MissingPromptError. A chosen template replaces that chain and
        must have every required variable filled. Additional instructions are
        appended after a blank line and are not substituted.
        """
        product = self.db.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        asset_type = self.db.get(AssetType, asset_type_id)
        if not asset_type:
            raise NotFoundError(f"Asset type {asset_type_id} not found")

        override = self.get_override(product_id, asset_type_id)
        if template_id:
            template, source = self._render_template(template_id, template_variables, product, asset_type), "template"
        elif override and override.custom_prompt and override.custom_prompt.strip():
            template, source = override.custom_prompt, "override"
        elif asset_type.default_prompt and asset_type.default_prompt.strip():
            template, source = asset_type.default_prompt, "default"
        else:
            raise MissingPromptError(
                f"No prompt configured for asset type '{asset_type.name}'",
                details={"productId": str(product_id), "assetTypeId": str(asset_type_id)},
            )

        prompt = render_prompt(template, product)
        if additional_instructions and additional_instructions.strip():
            prompt = f"{prompt}\n\n{additional_instructions.strip()}"

        logger.info(
            "prompt resolved",
            product_id=str(product_id),
            asset_type_id=str(asset_type_id),
            source=source,
        )
        return prompt

    def _render_template(self, template_id, values, product: Product, asset_type: AssetType) -> str:
        service = TemplateService(self.db)
        prompt_template = service.get_template(template_id)
        if not prompt_template.is_active:
            raise ValidationError(f"Template '{prompt_template.name}' is inactive")
        if not template_matches_kind(prompt_template, asset_type.kind):
            raise ValidationError(
                f"Template '{prompt_template.name}' is not usable for {asset_type.kind.lower()} assets",
                details={"templateId": str(template_id), "category": prompt_template.category},
            )
        rendered = service.render(template_id, values, product_id=product.id)
        if rendered.missing_variables:
            raise ValidationError(
                "Template variables missing",
                details={"templateId": str(template_id), "missingVariables": rendered.missing_variables},
            )
        return rendered.prompt

    # Asset types

    def create_asset_type(
        self,
        name: str,
        default_prompt: str,
        kind: AssetKind = AssetKind.IMAGE,
        order: int = 0,
        description: Optional[str] = None,
    ) -> AssetType:
        """Create an asset type with its first, active prompt version"""
        if not default_prompt or not default_prompt.strip():
            raise ValidationError("default_prompt must not be empty")
        asset_type = AssetType(
            kind=AssetKind(kind).value,
            name=name,
            description=description,
            order=order,
            default_prompt=default_prompt,
        )
        self.db.add(asset_type)
        try:
            self.db.flush()
            self.db.add(PromptVersion(
                asset_type_id=asset_type.id,
                version=1,
                prompt_text=default_prompt,
                is_active=True,
                change_note="Initial version",
            ))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError(f"Asset type '{name}' already exists for {AssetKind(kind).value}")
        self.db.refresh(asset_type)
        logger.info("asset type created", asset_type_id=str(asset_type.id), name=name, kind=asset_type.kind)
        return asset_type

    def get_asset_type(self, asset_type_id: UUID) -> AssetType:
        asset_type = self.db.get(AssetType, asset_type_id)
        if not asset_type:
            raise NotFoundError(f"Asset type {asset_type_id} not found")
        return asset_type

    def list_asset_types(self, kind: Optional[AssetKind] = None):
        query = self.db.query(AssetType)
        if kind:
            query = query.filter(AssetType.kind == AssetKind(kind).value)
        return query.order_by(AssetType.order, AssetType.name).all()

    # Prompt versions

    def create_prompt_version(
        self, asset_type_id: UUID, prompt_text: str, change_note: Optional[str] = None
    ) -> PromptVersion:
        """Add a new version and make it the only active one"""
        if not prompt_text or not prompt_text.strip():
            raise ValidationError("prompt_text must not be empty")

        for _ in range(MAX_VERSION_ATTEMPTS):
            asset_type = self._lock_asset_type(asset_type_id)
            next_version = (
                self.db.query(func.max(PromptVersion.version))
                .filter(PromptVersion.asset_type_id == asset_type_id)
                .scalar()
            ) or 0
            self._deactivate_all(asset_type_id)
            prompt_version = PromptVersion(
                asset_type_id=asset_type_id,
                version=next_version + 1,
                prompt_text=prompt_text,
                is_active=True,
                change_note=change_note,
            )
            self.db.add(prompt_version)
            asset_type.default_prompt = prompt_text
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                continue
            self.db.refresh(prompt_version)
            logger.info(
                "prompt version created",
                asset_type_id=str(asset_type_id),
                version=prompt_version.version,
            )
            return prompt_version

        raise RuntimeError(f"Could not create prompt version for asset type {asset_type_id}")

    def activate_prompt_version(self, asset_type_id: UUID, version: int) -> PromptVersion:
        """Make an existing version the active one and the type default"""
        asset_type = self._lock_asset_type(asset_type_id)
        prompt_version = (
            self.db.query(PromptVersion)
            .filter(PromptVersion.asset_type_id == asset_type_id, PromptVersion.version == version)
            .first()
        )
        if not prompt_version:
            self.db.rollback()
            raise NotFoundError(f"Prompt version {version} not found for asset type {asset_type_id}")

        self._deactivate_all(asset_type_id)
        prompt_version.is_active = True
        asset_type.default_prompt = prompt_version.prompt_text
        self.db.commit()
        self.db.refresh(prompt_version)
        logger.info("prompt version activated", asset_type_id=str(asset_type_id), version=version)
        return prompt_version

    def get_active_version(self, asset_type_id: UUID) -> Optional[PromptVersion]:
        return (
            self.db.query(PromptVersion)
            .filter(PromptVersion.asset_type_id == asset_type_id, PromptVersion.is_active.is_(True))
            .first()
        )

    def _lock_asset_type(self, asset_type_id: UUID) -> AssetType:
        asset_type = (
            self.db.query(AssetType)
            .filter(AssetType.id == asset_type_id)
            .with_for_update()
            .first()
        )
        if not asset_type:
            raise NotFoundError(f"Asset type {asset_type_id} not found")
        return asset_type

    def _deactivate_all(self, asset_type_id: UUID) -> None:
        self.db.execute(
            update(PromptVersion)
            .where(PromptVersion.asset_type_id == asset_type_id, PromptVersion.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )

    # Overrides

    def get_override(self, product_id: UUID, asset_type_id: UUID) -> Optional[PromptOverride]:
        return (
            self.db.query(PromptOverride)
            .filter(PromptOverride.product_id == product_id, PromptOverride.asset_type_id == asset_type_id)
            .first()
        )

    def set_override(self, product_id: UUID, asset_type_id: UUID, custom_prompt: str) -> PromptOverride:
        if not self.db.get(Product, product_id):
            raise NotFoundError(f"Product {product_id} not found")
        self.get_asset_type(asset_type_id)

        override = self.get_override(product_id, asset_type_id)
        if override:
            override.custom_prompt = custom_prompt
        else:
            override = PromptOverride(
                product_id=product_id,
                asset_type_id=asset_type_id,
                custom_prompt=custom_prompt,
            )
            self.db.add(override)
        try:
            self.db.commit()
        except IntegrityError:
            # Concurrent insert of the same pair; update the winner instead
            self.db.rollback()
            override = self.get_override(product_id, asset_type_id)
            override.custom_prompt = custom_prompt
            self.db.commit()
        self.db.refresh(override)
        logger.info("prompt override saved", product_id=str(product_id), asset_type_id=str(asset_type_id))
        return override

    def clear_override(self, product_id: UUID, asset_type_id: UUID) -> bool:
        override = self.get_override(product_id, asset_type_id)
        if not override:
            return False
        self.db.delete(override)
        self.db.commit()
        logger.info("prompt override cleared", product_id=str(product_id), asset_type_id=str(asset_type_id))
        return True
