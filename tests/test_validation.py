import pytest

from storefront.exceptions import ValidationError
from storefront.schemas import CategoryColor, CategoryForm, MenuItemForm, VariantForm
from storefront.services.validation import (
    is_valid_image_url,
    parse_price,
    validate_category_form,
    validate_menu_item_form,
    validate_variant_form,
)


def make_form(**overrides):
    fields = {"name": "Wedding Osh", "price": "25000", "category": "Osh"}
    fields.update(overrides)
    return MenuItemForm(**fields)


@pytest.mark.parametrize("price", ["0", "-5", "", "abc", "nan", "inf"])
def test_rejects_invalid_prices(price, settings):
    with pytest.raises(ValidationError) as exc:
        validate_menu_item_form(make_form(price=price), settings)

    assert exc.value.field == "price"


def test_accepts_valid_price(settings):
    draft = validate_menu_item_form(make_form(price="25000"), settings)

    assert draft.price == 25000


@pytest.mark.parametrize("image", ["https://example.com/a.jpg", "", "/local/path.svg", "./img/osh.png"])
def test_accepts_valid_images(image, settings):
    validate_menu_item_form(make_form(image=image), settings)


@pytest.mark.parametrize("image", ["ftp://x", "not-a-url", "https://"])
def test_rejects_invalid_images(image, settings):
    with pytest.raises(ValidationError) as exc:
        validate_menu_item_form(make_form(image=image), settings)

    assert exc.value.field == "image"


def test_rules_run_in_order(settings):
    form = MenuItemForm(name="  ", price="abc", category="", image="ftp://x")

    with pytest.raises(ValidationError) as exc:
        validate_menu_item_form(form, settings)
    assert exc.value.field == "name"

    form.name = "Osh"
    with pytest.raises(ValidationError) as exc:
        validate_menu_item_form(form, settings)
    assert exc.value.field == "price"

    form.price = "10"
    with pytest.raises(ValidationError) as exc:
        validate_menu_item_form(form, settings)
    assert exc.value.field == "category"


def test_draft_is_normalised(settings):
    draft = validate_menu_item_form(
        make_form(
            name="  Wedding Osh ",
            description=" ",
            preparation_time="soon",
            variants=[{"id": "half", "name": "Half", "price": 15000, "image": "  "}],
        ),
        settings,
    )

    assert draft.name == "Wedding Osh"
    assert draft.description == settings.default_description
    assert draft.image == settings.placeholder_image
    assert draft.preparation_time == settings.default_preparation_time
    assert draft.variants[0].image is None


def test_numbers_are_accepted_as_form_text(settings):
    draft = validate_menu_item_form(MenuItemForm(name="Tea", price=5000, category="Drinks", preparation_time=3), settings)

    assert draft.price == 5000
    assert draft.preparation_time == 3


def test_create_and_update_documents(settings):
    draft = validate_menu_item_form(make_form(), settings)

    created = draft.to_create_document()
    assert created["isAvailable"] is True
    assert created["rating"] == 0
    assert "id" not in created

    changes = draft.to_update_document()
    assert "isAvailable" not in changes
    assert "rating" not in changes
    assert changes["variants"] == []
    assert changes["preparationTime"] == settings.default_preparation_time


def test_parse_price_and_image_helpers():
    assert parse_price(" 12.5 ") == 12.5
    assert parse_price("1e400") is None
    assert is_valid_image_url("/placeholder.svg?height=200&width=300")
    assert is_valid_image_url("placeholder.svg")
    assert not is_valid_image_url("")


def test_variant_form():
    variant = validate_variant_form(VariantForm(name="Half", price="15000"))

    assert variant.id
    assert variant.price == 15000
    assert variant.image is None
    assert variant.is_available is True

    with pytest.raises(ValidationError):
        validate_variant_form(VariantForm(name="Half", price="0"))
    with pytest.raises(ValidationError):
        validate_variant_form(VariantForm(name="", price="10"))
    with pytest.raises(ValidationError):
        validate_variant_form(VariantForm(name="Half", price="10", image="ftp://x"))


def test_category_form():
    category = validate_category_form(CategoryForm(name=" Soups ", color=CategoryColor.RED))

    assert category.name == "Soups"
    assert category.color == CategoryColor.RED

    with pytest.raises(ValidationError) as exc:
        validate_category_form(CategoryForm(name=""))
    assert exc.value.to_dict() == {"field": "name", "message": "Enter the category name"}
