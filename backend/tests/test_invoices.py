# Overview: Pytest coverage for invoice aggregate writes, listing and documents.

import pytest

from billing.errors import AccessDeniedError, NotFoundError, ValidationError
from billing.models import Invoice, InvoiceItem
from billing.permissions import ShopRole
from billing.services import invoice_service, user_shop_service

from conftest import invoice_payload


def _item(description="Bolt", quantity=1, unit_value="10.00", taxable_value="10.00", **extra):
    item = {
        "description": description,
        "quantity": quantity,
        "unit_value": unit_value,
        "taxable_value": taxable_value,
    }
    item.update(extra)
    return item


class TestCreateInvoice:

    def test_round_trip_keeps_items_and_amounts(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload())

        fetched = invoice_service.get_invoice(invoice.id, owner.id).to_dict()
        assert fetched["serial_no"] == "INV-001"
        assert fetched["invoice_date"] == "2026-10-01"
        assert fetched["total"] == "5192.00"
        assert fetched["bill_to"]["name"] == "Acme Corp"
        assert [item["position"] for item in fetched["items"]] == [0, 1]

        first, second = fetched["items"]
        assert first["description"] == "Steel rod"
        assert first["quantity"] == "2.00"
        assert first["taxable_value"] == "1000.00"
        assert first["cgst_amount"] == "90.00"
        assert first["igst_amount"] == "0.00"
        assert second["discount"] == "100.00"
        assert second["igst_rate"] == "18.00"

    def test_empty_item_list_is_allowed(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload(items=[]))
        assert invoice.items == []

    def test_issuer_fields_default_from_shop(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload())

        assert invoice.shop_legal_name == "Acme Traders Pvt Ltd"
        assert invoice.gstin == "27ABCDE1234F1Z5"
        assert invoice.pan_no == "ABCDE1234F"
        assert invoice.state_code == "27"
        assert invoice.created_by_user_id == owner.id

    def test_explicit_issuer_fields_win(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(
            shop.id, owner.id, invoice_payload(gstin="29XYZAB9876C1Z2", state="Karnataka")
        )
        assert invoice.gstin == "29XYZAB9876C1Z2"
        assert invoice.state == "Karnataka"

    def test_snapshot_survives_shop_edit(self, db_session, owner, shop):
        from billing.services.shop_service import update_shop

        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload())
        update_shop(owner.id, shop.id, {"gstin": "27NEWGST0000A1Z1"})

        assert invoice_service.get_invoice(invoice.id, owner.id).gstin == "27ABCDE1234F1Z5"

    def test_bad_item_rolls_back_whole_invoice(self, db_session, owner, shop):
        items = [_item(), _item(quantity="lots")]
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(shop.id, owner.id, invoice_payload(items=items))
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(InvoiceItem).count() == 0

    def test_requires_party_name(self, db_session, owner, shop):
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(shop.id, owner.id, invoice_payload(bill_to={"address": "x"}))

    def test_items_must_be_a_list(self, db_session, owner, shop):
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(shop.id, owner.id, invoice_payload(items={"description": "x"}))


class TestUpdateInvoice:

    def test_item_patch_merges_and_keeps_siblings(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(
            shop.id, owner.id, invoice_payload(items=[_item("A"), _item("B")])
        )
        item_a, item_b = invoice.items
        item_a_id, item_b_id = item_a.id, item_b.id

        invoice_service.update_invoice(invoice.id, owner.id, {"items": [{"id": item_a_id, "quantity": 5}]})

        items = {item["id"]: item for item in invoice_service.get_invoice(invoice.id, owner.id).to_dict()["items"]}
        assert set(items) == {item_a_id, item_b_id}
        assert items[item_a_id]["quantity"] == "5.00"
        assert items[item_a_id]["description"] == "A"
        assert items[item_b_id]["quantity"] == "1.00"
        assert items[item_b_id]["description"] == "B"

    def test_new_item_is_appended(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload(items=[_item("A")]))

        invoice_service.update_invoice(invoice.id, owner.id, {"items": [_item("C")]})

        items = invoice_service.get_invoice(invoice.id, owner.id).items
        assert [item.description for item in items] == ["A", "C"]
        assert [item.position for item in items] == [0, 1]

    def test_scalar_fields_only(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload())

        invoice_service.update_invoice(invoice.id, owner.id, {"total": "6000", "invoice_type": "CREDIT_NOTE"})

        fetched = invoice_service.get_invoice(invoice.id, owner.id)
        assert fetched.to_dict()["total"] == "6000.00"
        assert fetched.invoice_type == "CREDIT_NOTE"
        assert len(fetched.items) == 2

    def test_unknown_item_id_fails_and_changes_nothing(self, db_session, owner, shop, make_shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload(items=[_item("A")]))
        other = invoice_service.create_invoice(
            make_shop(owner, name="Other Shop").id, owner.id, invoice_payload(items=[_item("Z")])
        )
        foreign_item_id = other.items[0].id

        with pytest.raises(NotFoundError) as exc_info:
            invoice_service.update_invoice(
                invoice.id, owner.id,
                {"total": "1.00", "items": [{"id": foreign_item_id, "quantity": 9}]},
            )
        assert exc_info.value.code == "INVOICE_ITEM_NOT_FOUND"

        db_session.expire_all()
        fetched = invoice_service.get_invoice(invoice.id, owner.id)
        assert fetched.to_dict()["total"] == "5192.00"
        assert db_session.get(InvoiceItem, foreign_item_id).to_dict()["quantity"] == "1.00"


class TestItemOperations:

    def test_add_update_delete_item(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload(items=[_item("A")]))

        added = invoice_service.add_item(invoice.id, owner.id, _item("B"))
        assert added.position == 1

        updated = invoice_service.update_item(added.id, owner.id, {"discount": "2.50"})
        assert updated.to_dict()["discount"] == "2.50"

        invoice_service.delete_item(added.id, owner.id)
        assert [item.description for item in invoice_service.get_invoice(invoice.id, owner.id).items] == ["A"]
        assert db_session.get(InvoiceItem, added.id) is None

    def test_delete_invoice_cascades_items(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload())

        invoice_service.delete_invoice(invoice.id, owner.id)

        assert db_session.query(Invoice).count() == 0
        assert db_session.query(InvoiceItem).count() == 0
        with pytest.raises(NotFoundError):
            invoice_service.get_invoice(invoice.id, owner.id)


class TestInvoiceIsolation:

    def test_outsider_sees_not_found(self, db_session, owner, shop, outsider):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload())
        item_id = invoice.items[0].id

        with pytest.raises(NotFoundError) as read:
            invoice_service.get_invoice(invoice.id, outsider.id)
        assert read.value.code == "INVOICE_NOT_FOUND"

        with pytest.raises(NotFoundError):
            invoice_service.update_invoice(invoice.id, outsider.id, {"total": "1"})
        with pytest.raises(NotFoundError):
            invoice_service.delete_invoice(invoice.id, outsider.id)

        with pytest.raises(NotFoundError) as item_error:
            invoice_service.update_item(item_id, outsider.id, {"quantity": 3})
        assert item_error.value.code == "INVOICE_ITEM_NOT_FOUND"

        assert db_session.query(Invoice).count() == 1

    def test_editor_cannot_delete_invoice(self, db_session, owner, shop, make_user):
        editor = make_user("editor_user")
        user_shop_service.associate_user(editor.id, shop.id, ShopRole.EDITOR)
        invoice = invoice_service.create_invoice(shop.id, editor.id, invoice_payload())

        with pytest.raises(AccessDeniedError):
            invoice_service.delete_invoice(invoice.id, editor.id)

        invoice_service.delete_invoice(invoice.id, owner.id)

    def test_outsider_cannot_list(self, db_session, shop, outsider):
        with pytest.raises(AccessDeniedError):
            invoice_service.list_invoices(shop.id, outsider.id)


class TestListInvoices:

    def test_pagination_newest_first(self, db_session, owner, shop):
        for n in range(1, 26):
            invoice_service.create_invoice(shop.id, owner.id, invoice_payload(serial_no=f"INV-{n:03d}", items=[]))

        page = invoice_service.list_invoices(shop.id, owner.id, page=3, page_size=10)

        assert page["count"] == 5
        assert page["total"] == 25
        assert [row["serial_no"] for row in page["items"]] == [
            "INV-005", "INV-004", "INV-003", "INV-002", "INV-001",
        ]
        assert page["pagination"]["total_pages"] == 3
        assert page["pagination"]["has_next"] is False
        assert page["pagination"]["has_prev"] is True

        first = invoice_service.list_invoices(shop.id, owner.id, page=1, page_size=10)
        assert first["items"][0]["serial_no"] == "INV-025"

    def test_bad_parameters_fall_back_to_defaults(self, db_session, owner, shop):
        for n in range(1, 13):
            invoice_service.create_invoice(shop.id, owner.id, invoice_payload(serial_no=f"INV-{n:03d}", items=[]))

        page = invoice_service.list_invoices(shop.id, owner.id, page="abc", page_size="-4")

        assert page["pagination"]["page"] == 1
        assert page["pagination"]["page_size"] == 10
        assert page["count"] == 10

    def test_page_size_is_capped(self, db_session, owner, shop):
        page = invoice_service.list_invoices(shop.id, owner.id, page=1, page_size=100000)
        assert page["pagination"]["page_size"] == 100
        assert page["items"] == []
        assert page["pagination"]["total_pages"] == 1

    def test_type_filter(self, db_session, owner, shop):
        invoice_service.create_invoice(shop.id, owner.id, invoice_payload(serial_no="A", items=[]))
        invoice_service.create_invoice(
            shop.id, owner.id, invoice_payload(serial_no="B", items=[], invoice_type="CREDIT_NOTE")
        )

        page = invoice_service.list_invoices(shop.id, owner.id, invoice_type="CREDIT_NOTE")
        assert [row["serial_no"] for row in page["items"]] == ["B"]
        assert page["total"] == 1

    def test_other_shops_invoices_are_excluded(self, db_session, owner, shop, make_shop):
        other = make_shop(owner, name="Other Shop")
        invoice_service.create_invoice(shop.id, owner.id, invoice_payload(serial_no="MINE", items=[]))
        invoice_service.create_invoice(other.id, owner.id, invoice_payload(serial_no="THEIRS", items=[]))

        page = invoice_service.list_invoices(shop.id, owner.id)
        assert [row["serial_no"] for row in page["items"]] == ["MINE"]


class TestDocumentAndArithmetic:

    def test_document_totals_and_words(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload())

        document = invoice_service.get_invoice_document(invoice.id, owner.id)

        assert document["total_taxable_value"] == "4400.00"
        assert document["total_cgst"] == "90.00"
        assert document["total_sgst"] == "90.00"
        assert document["total_igst"] == "612.00"
        assert document["total_in_words"] == "Five Thousand One Hundred Ninety Two Only"
        assert len(document["items"]) == 2

    def test_total_is_stored_not_recomputed(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload(total="1.00"))
        assert invoice_service.get_invoice_document(invoice.id, owner.id)["total"] == "1.00"

    def test_audit_flags_inconsistent_items(self, db_session, owner, shop):
        items = [
            _item("Fine", quantity=2, unit_value="10.00", taxable_value="20.00", cgst_rate=9, cgst_amount="1.80"),
            _item("Off", quantity=2, unit_value="10.00", taxable_value="25.00", igst_rate=18, igst_amount="1.00"),
        ]
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload(items=items))

        report = invoice_service.get_invoice_arithmetic(invoice.id, owner.id)

        assert report["balanced"] is False
        fields = {(row["position"], row["field"]) for row in report["discrepancies"]}
        assert fields == {(1, "taxable_value"), (1, "igst_amount")}

    def test_sample_payload_is_balanced(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload())
        assert invoice_service.audit_arithmetic(invoice) == []

    def test_strict_mode_rejects_inconsistent_items(self, app, db_session, owner, shop):
        items = [_item("Off", quantity=2, unit_value="10.00", taxable_value="25.00")]
        app.config["STRICT_INVOICE_ARITHMETIC"] = True
        try:
            with pytest.raises(ValidationError) as exc_info:
                invoice_service.create_invoice(shop.id, owner.id, invoice_payload(items=items))
        finally:
            app.config["STRICT_INVOICE_ARITHMETIC"] = False

        assert exc_info.value.details["discrepancies"][0]["field"] == "taxable_value"
        assert db_session.query(Invoice).count() == 0


class TestAmountPrecision:

    def test_more_than_two_decimals_is_rejected(self, db_session, owner, shop):
        items = [_item(quantity="1.005")]
        with pytest.raises(ValidationError) as exc_info:
            invoice_service.create_invoice(shop.id, owner.id, invoice_payload(items=items))

        assert "quantity" in exc_info.value.message
        assert db_session.query(Invoice).count() == 0

    def test_trailing_zeros_are_exact(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(
            shop.id, owner.id, invoice_payload(items=[_item(quantity="1.000")], total="10.500")
        )
        data = invoice.to_dict()
        assert data["items"][0]["quantity"] == "1.00"
        assert data["total"] == "10.50"

    def test_item_patch_is_checked_too(self, db_session, owner, shop):
        invoice = invoice_service.create_invoice(shop.id, owner.id, invoice_payload(items=[_item()]))

        with pytest.raises(ValidationError):
            invoice_service.update_item(invoice.items[0].id, owner.id, {"discount": 0.125})
