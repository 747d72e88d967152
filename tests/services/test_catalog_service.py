"""Artisans and products."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from fair_kernel.domain.dtos import SaleItem
from fair_kernel.domain.enums import PaymentMethod
from fair_kernel.exceptions import (
    ArtisanNotFoundError,
    ConflictError,
    EntityInUseError,
    EventClosedError,
    EventNotEditableError,
    EventNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from fair_kernel.models.artisan import Artisan
from fair_kernel.models.product import Product


class TestArtisanRegistration:
    def test_register(self, artisan_service):
        artisan = artisan_service.register("  Rosa Tejedora ", "1234567")
        assert artisan.name == "Rosa Tejedora"
        assert artisan.identification == "1234567"
        assert artisan.active is True

    @pytest.mark.parametrize("identification", ["1234", "12345678901", "12a45", "", None])
    def test_identification_format(self, artisan_service, identification):
        with pytest.raises(ValidationError) as exc_info:
            artisan_service.register("Rosa", identification)
        assert exc_info.value.field == "identification"

    def test_numeric_identification_accepted(self, artisan_service):
        assert artisan_service.register("Rosa", 98765).identification == "98765"

    def test_identification_unique(self, artisan_service):
        artisan_service.register("Rosa", "55555")
        with pytest.raises(ValidationError, match="already exists"):
            artisan_service.register("Rosa Two", "55555")

    def test_name_required(self, artisan_service):
        with pytest.raises(ValidationError) as exc_info:
            artisan_service.register("   ", "55555")
        assert exc_info.value.field == "name"


class TestArtisanRetirement:
    def test_deactivate_without_products(self, artisan_service, artisan):
        assert artisan_service.deactivate(artisan.id).active is False
        assert artisan_service.activate(artisan.id).active is True

    def test_deactivate_blocked_by_open_event(
        self, artisan_service, active_event, artisan, make_product
    ):
        make_product(active_event, artisan)
        with pytest.raises(EntityInUseError) as exc_info:
            artisan_service.deactivate(artisan.id)
        assert isinstance(exc_info.value, ConflictError)

    def test_deactivate_allowed_once_events_closed(
        self, artisan_service, event_service, active_event, artisan, make_product
    ):
        make_product(active_event, artisan)
        event_service.close_event(active_event.id, confirm=True)
        assert artisan_service.deactivate(artisan.id).active is False

    def test_delete_without_products(self, artisan_service, repository, artisan):
        artisan_service.delete(artisan.id)
        assert repository.find_by_id(Artisan, artisan.id) is None

    def test_delete_blocked_by_any_product(
        self, artisan_service, event_service, active_event, artisan, make_product
    ):
        make_product(active_event, artisan)
        event_service.close_event(active_event.id, confirm=True)
        with pytest.raises(EntityInUseError):
            artisan_service.delete(artisan.id)

    def test_unknown_artisan(self, artisan_service):
        with pytest.raises(ArtisanNotFoundError):
            artisan_service.deactivate(uuid4())


class TestCreateProduct:
    def test_create_in_scheduled_and_active_events(
        self, product_service, scheduled_event, active_event, artisan
    ):
        for event in (scheduled_event, active_event):
            product = product_service.create_product(
                event.id, artisan.id, "Taza", Decimal("12.50"), "ceramics"
            )
            assert product.event_id == event.id
            assert product.price == Decimal("12.50")

    def test_closed_event_is_a_conflict(self, product_service, event_service, active_event, artisan):
        event_service.close_event(active_event.id, confirm=True)
        with pytest.raises(EventClosedError):
            product_service.create_product(
                active_event.id, artisan.id, "Taza", Decimal("10"), "ceramics"
            )

    @pytest.mark.parametrize("price", [Decimal("0"), Decimal("-1"), "abc", 9.99])
    def test_price_must_be_positive_decimal(self, product_service, active_event, artisan, price):
        with pytest.raises(ValidationError) as exc_info:
            product_service.create_product(active_event.id, artisan.id, "Taza", price, "ceramics")
        assert exc_info.value.field == "price"

    def test_name_unique_per_event_and_artisan(
        self, product_service, active_event, make_artisan
    ):
        rosa = make_artisan("Rosa")
        luis = make_artisan("Luis")
        product_service.create_product(active_event.id, rosa.id, "Taza", Decimal("10"), "ceramics")
        # Another artisan may reuse the name
        product_service.create_product(active_event.id, luis.id, "Taza", Decimal("10"), "ceramics")
        with pytest.raises(ValidationError) as exc_info:
            product_service.create_product(
                active_event.id, rosa.id, "Taza", Decimal("11"), "ceramics"
            )
        assert exc_info.value.field == "name"

    def test_inactive_artisan(self, product_service, artisan_service, active_event, artisan):
        artisan_service.deactivate(artisan.id)
        with pytest.raises(ValidationError) as exc_info:
            product_service.create_product(
                active_event.id, artisan.id, "Taza", Decimal("10"), "ceramics"
            )
        assert exc_info.value.field == "artisanId"

    def test_negative_initial_stock(self, product_service, active_event, artisan):
        with pytest.raises(ValidationError) as exc_info:
            product_service.create_product(
                active_event.id, artisan.id, "Taza", Decimal("10"), "ceramics", initial_stock=-1
            )
        assert exc_info.value.field == "initialStock"

    def test_unknown_references(self, product_service, active_event, artisan):
        with pytest.raises(EventNotFoundError):
            product_service.create_product(uuid4(), artisan.id, "Taza", Decimal("10"), "x")
        with pytest.raises(ArtisanNotFoundError):
            product_service.create_product(active_event.id, uuid4(), "Taza", Decimal("10"), "x")


class TestUpdateAndDeleteProduct:
    def test_update_while_scheduled(self, product_service, scheduled_event, artisan, make_product):
        product = make_product(scheduled_event, artisan, stock=0, name="Taza")
        updated = product_service.update_product(
            product.id, name="Taza grande", price=Decimal("15"), category="kitchen"
        )
        assert updated.name == "Taza grande"
        assert updated.price == Decimal("15")
        assert updated.category == "kitchen"

    def test_update_after_start_not_editable(
        self, product_service, active_event, artisan, make_product
    ):
        product = make_product(active_event, artisan)
        with pytest.raises(EventNotEditableError):
            product_service.update_product(product.id, price=Decimal("15"))

    def test_update_unknown_field(self, product_service, scheduled_event, artisan, make_product):
        product = make_product(scheduled_event, artisan)
        with pytest.raises(ValidationError) as exc_info:
            product_service.update_product(product.id, event_id=uuid4())
        assert exc_info.value.field == "event_id"

    def test_update_to_taken_name(self, product_service, scheduled_event, artisan, make_product):
        make_product(scheduled_event, artisan, name="Taza")
        other = make_product(scheduled_event, artisan, name="Cuenco")
        with pytest.raises(ValidationError):
            product_service.update_product(other.id, name="Taza")

    def test_delete_product_without_movements(
        self, product_service, repository, scheduled_event, artisan, make_product
    ):
        product = make_product(scheduled_event, artisan, stock=0)
        product_service.delete_product(product.id)
        assert repository.find_by_id(Product, product.id) is None

    def test_delete_blocked_by_movements(
        self, product_service, scheduled_event, artisan, make_product
    ):
        product = make_product(scheduled_event, artisan, stock=3)
        with pytest.raises(EntityInUseError):
            product_service.delete_product(product.id)

    def test_delete_after_start_not_editable(
        self, product_service, active_event, artisan, make_product
    ):
        product = make_product(active_event, artisan, stock=0)
        with pytest.raises(EventNotEditableError):
            product_service.delete_product(product.id)

    def test_delete_unknown_product(self, product_service):
        with pytest.raises(ProductNotFoundError):
            product_service.delete_product(uuid4())

    def test_sale_uses_price_edited_before_start(
        self, recorder, product_service, event_service, make_event, artisan, make_product, clock
    ):
        event = make_event(starts_in=timedelta(hours=1))
        product = make_product(event, artisan, price=Decimal("10"))
        product_service.update_product(product.id, price=Decimal("12"))

        clock.advance(2 * 3600)
        result = recorder.record_sale(
            event.id, PaymentMethod.CASH, [SaleItem(product.id, artisan.id, 1)]
        )
        assert result.sales[0].value_charged == Decimal("12")
        assert event_service.effective_state(event.id) == "ACTIVE"
