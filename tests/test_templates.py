import pytest

from listing_studio.core.exceptions import NotFoundError, ValidationError
from listing_studio.models import PromptTemplate, TemplateCategory, TemplateVariable
from listing_studio.services.template import TemplateService, render_template


@pytest.fixture
def lifestyle(db):
    return TemplateService(db).create_template(
        name="Lifestyle",
        prompt_text="{{item_name}} on a {{surface}} table, {{lighting}} light",
        category=TemplateCategory.IMAGE,
        variables=[
            {"name": "item_name", "display_name": "Item", "type": "AUTO", "auto_fill_source": "product.title"},
            {"name": "surface", "display_name": "Surface"},
            {
                "name": "lighting",
                "display_name": "Lighting",
                "type": "DROPDOWN",
                "options": ["soft", "studio"],
                "default_value": "soft",
            },
        ],
    )


def test_create_keeps_variable_order(lifestyle):
    assert [v.name for v in lifestyle.variables] == ["item_name", "surface", "lighting"]
    assert [v.order for v in lifestyle.variables] == [0, 1, 2]
    assert lifestyle.variables[2].options == ["soft", "studio"]


def test_duplicate_name_rejected(db, lifestyle):
    with pytest.raises(ValidationError):
        TemplateService(db).create_template(name="Lifestyle", prompt_text="x")


@pytest.mark.parametrize(
    "variables",
    [
        [{"name": "bad name"}],
        [{"name": "a"}, {"name": "a"}],
        [{"name": "a", "type": "COLOR"}],
        [{"name": "a", "type": "AUTO", "auto_fill_source": "product.price"}],
    ],
)
def test_invalid_variables_rejected(db, variables):
    with pytest.raises(ValidationError):
        TemplateService(db).create_template(name="Broken", prompt_text="{{a}}", variables=variables)
    assert db.query(PromptTemplate).count() == 0


def test_render_fills_auto_and_defaults(db, product, lifestyle):
    rendered = TemplateService(db).render(lifestyle.id, {"surface": "oak"}, product_id=product.id)

    assert rendered.prompt == "Steel Water Bottle on a oak table, soft light"
    assert rendered.missing_variables == []
    assert rendered.variables["item_name"] == "Steel Water Bottle"


def test_render_reports_missing_by_display_name(db, lifestyle):
    rendered = TemplateService(db).render(lifestyle.id, {})

    assert rendered.missing_variables == ["Item", "Surface"]
    assert rendered.prompt == " on a  table, soft light"


def test_dropdown_value_must_be_an_option(db, lifestyle):
    with pytest.raises(ValidationError) as exc:
        TemplateService(db).render(lifestyle.id, {"surface": "oak", "lighting": "neon"})
    assert exc.value.details["options"] == ["soft", "studio"]


def test_render_unknown_product(db, lifestyle):
    with pytest.raises(NotFoundError):
        TemplateService(db).render(lifestyle.id, {}, product_id=lifestyle.id)


def test_product_fallback_for_unlisted_placeholders(product):
    assert render_template("{{asin}} / {{unknown}}", {}, product) == "B0TEST0001 / "


def test_duplicate_numbers_copies(db, lifestyle):
    service = TemplateService(db)

    first = service.duplicate_template(lifestyle.id)
    second = service.duplicate_template(lifestyle.id)

    assert first.name == "Lifestyle (Copy)"
    assert second.name == "Lifestyle (Copy 2)"
    assert [v.name for v in second.variables] == ["item_name", "surface", "lighting"]
    assert db.query(TemplateVariable).count() == 9


def test_update_replaces_variables(db, lifestyle):
    updated = TemplateService(db).update_template(
        lifestyle.id,
        prompt_text="{{item_name}} close up",
        variables=[{"name": "item_name", "type": "AUTO", "auto_fill_source": "product.title"}],
    )

    assert updated.prompt_text == "{{item_name}} close up"
    assert [v.name for v in updated.variables] == ["item_name"]
    assert db.query(TemplateVariable).count() == 1


def test_update_rejects_unknown_fields(db, lifestyle):
    with pytest.raises(ValidationError):
        TemplateService(db).update_template(lifestyle.id, owner="someone")


def test_deactivated_templates_hidden_from_listing(db, lifestyle):
    service = TemplateService(db)
    both = service.create_template(name="Plain", prompt_text="{{item_name}}")

    service.deactivate_template(lifestyle.id)

    assert [t.id for t in service.list_templates()] == [both.id]
    assert {t.id for t in service.list_templates(include_inactive=True)} == {both.id, lifestyle.id}
    assert service.get_template(lifestyle.id).is_active is False


def test_list_by_category_includes_shared(db, lifestyle):
    service = TemplateService(db)
    shared = service.create_template(name="Shared", prompt_text="x", category=TemplateCategory.BOTH)
    service.create_template(name="Clip", prompt_text="x", category=TemplateCategory.VIDEO)

    names = {t.name for t in service.list_templates(category=TemplateCategory.IMAGE)}

    assert names == {lifestyle.name, shared.name}
