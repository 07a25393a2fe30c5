# Overview: Flask API routes for invoices and invoice items; parses input and returns JSON responses.

from flask import Blueprint, Response, g, jsonify, request

from ..decorators import require_auth
from ..services import invoice_service, pdf_service


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api")


@invoices_bp.get("/shops/<int:shop_id>/invoices")
@require_auth
def list_invoices(shop_id: int):
    """
    Query params:
        page: 1-indexed page (default 1)
        pageSize | limit: page size (default 10, max 100)
        type: invoice_type filter
    """
    result = invoice_service.list_invoices(
        shop_id,
        g.current_user.id,
        page=request.args.get("page"),
        page_size=request.args.get("pageSize") or request.args.get("limit"),
        invoice_type=request.args.get("type") or None,
    )
    return jsonify(result), 200


@invoices_bp.post("/shops/<int:shop_id>/invoices")
@require_auth
def create_invoice(shop_id: int):
    data = request.get_json(silent=True)
    invoice = invoice_service.create_invoice(shop_id, g.current_user.id, data)
    return jsonify(invoice.to_dict()), 201


@invoices_bp.get("/shops/<int:shop_id>/invoices/search/bill-to")
@require_auth
def search_bill_to(shop_id: int):
    parties = invoice_service.search_bill_to(shop_id, g.current_user.id, request.args.get("name"))
    return jsonify(parties), 200


@invoices_bp.get("/shops/<int:shop_id>/invoices/search/ship-to")
@require_auth
def search_ship_to(shop_id: int):
    parties = invoice_service.search_ship_to(shop_id, g.current_user.id, request.args.get("name"))
    return jsonify(parties), 200


@invoices_bp.get("/invoices/<int:invoice_id>")
@require_auth
def get_invoice(invoice_id: int):
    document = invoice_service.get_invoice_document(invoice_id, g.current_user.id)
    return jsonify(document), 200


@invoices_bp.put("/invoices/<int:invoice_id>")
@require_auth
def update_invoice(invoice_id: int):
    data = request.get_json(silent=True)
    invoice = invoice_service.update_invoice(invoice_id, g.current_user.id, data)
    return jsonify(invoice.to_dict()), 200


@invoices_bp.delete("/invoices/<int:invoice_id>")
@require_auth
def delete_invoice(invoice_id: int):
    invoice_service.delete_invoice(invoice_id, g.current_user.id)
    return jsonify({"message": "Invoice deleted"}), 200


@invoices_bp.get("/invoices/<int:invoice_id>/pdf")
@require_auth
def invoice_pdf(invoice_id: int):
    pdf_bytes, filename = pdf_service.render_invoice_pdf(invoice_id, g.current_user.id)
    return Response(
        pdf_bytes,
        mimetype="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@invoices_bp.get("/invoices/<int:invoice_id>/arithmetic")
@require_auth
def invoice_arithmetic(invoice_id: int):
    return jsonify(invoice_service.get_invoice_arithmetic(invoice_id, g.current_user.id)), 200


@invoices_bp.post("/invoices/<int:invoice_id>/items")
@require_auth
def add_item(invoice_id: int):
    data = request.get_json(silent=True)
    item = invoice_service.add_item(invoice_id, g.current_user.id, data)
    return jsonify(item.to_dict()), 201


@invoices_bp.put("/invoice-items/<int:item_id>")
@require_auth
def update_item(item_id: int):
    data = request.get_json(silent=True)
    item = invoice_service.update_item(item_id, g.current_user.id, data)
    return jsonify(item.to_dict()), 200


@invoices_bp.delete("/invoice-items/<int:item_id>")
@require_auth
def delete_item(item_id: int):
    invoice_service.delete_item(item_id, g.current_user.id)
    return jsonify({"message": "Invoice item deleted"}), 200
