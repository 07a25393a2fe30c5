# Overview: Pytest coverage for per-shop sales aggregates.

import pytest

from billing.errors import AccessDeniedError, ValidationError
from billing.services import analytics_service, invoice_service, products_service
from billing.time_utils import utcnow

from conftest import invoice_payload


@pytest.fixture
def sales(db_session, owner, shop, make_shop):
    invoice_service.create_invoice(shop.id, owner.id, invoice_payload("A-1", items=[], total="100.50"))
    invoice_service.create_invoice(shop.id, owner.id, invoice_payload("A-2", items=[], total="49.50"))
    other = make_shop(owner, name="Other Shop")
    invoice_service.create_invoice(other.id, owner.id, invoice_payload("B-1", items=[], total="999.00"))
    return shop


class TestSalesTotals:

    def test_empty_shop_is_zero(self, db_session, owner, shop):
        assert analytics_service.today_sales(shop.id, owner.id) == "0.00"
        assert analytics_service.net_income(shop.id, owner.id) == "0.00"
        assert analytics_service.product_count(shop.id, owner.id) == 0

    def test_totals_are_per_shop(self, sales, owner):
        assert analytics_service.today_sales(sales.id, owner.id) == "150.00"
        assert analytics_service.yearly_sales(sales.id, owner.id) == "150.00"
        assert analytics_service.net_income(sales.id, owner.id) == "150.00"

    def test_month_sales(self, sales, owner):
        now = utcnow()
        assert analytics_service.month_sales(sales.id, owner.id) == "150.00"
        assert analytics_service.month_sales(sales.id, owner.id, year=str(now.year), month=str(now.month)) == "150.00"
        assert analytics_service.month_sales(sales.id, owner.id, year=now.year - 1, month=now.month) == "0.00"

    @pytest.mark.parametrize("year, month", [(2026, 13), (2026, 0), ("abc", 1), (9999, 12)])
    def test_month_sales_rejects_bad_parameters(self, sales, owner, year, month):
        with pytest.raises(ValidationError) as exc_info:
            analytics_service.month_sales(sales.id, owner.id, year=year, month=month)
        assert exc_info.value.code == "INVALID_PARAMETER"

    def test_product_count(self, db_session, owner, shop):
        products_service.bulk_create_products(shop.id, owner.id, [{"name": "Nails"}, {"name": "Screws"}])
        assert analytics_service.product_count(shop.id, owner.id) == 2

    def test_outsider_is_denied(self, sales, outsider):
        with pytest.raises(AccessDeniedError):
            analytics_service.net_income(sales.id, outsider.id)
