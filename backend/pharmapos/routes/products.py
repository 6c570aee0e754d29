# Overview: Flask API routes for the catalog and checkout; parses input and returns JSON responses.

# backend/pharmapos/routes/products.py
"""
Product and sale routes.

SECURITY: All routes require authentication.
- Reads and checkout are open to every authenticated user
- Create/update/delete product and the full sale list require the admin role
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_admin
from ..models import Product
from ..services import products_service, sales_service
from ..services.auth_context import AuthorizationError
from ..services.stock_ledger import get_stock_ledger
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_basket,
    ValidationError,
    ConflictError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"product_code", "name", "quantity", "price", "purchase_price", "supplier_id"},
    required_on_create={"name", "price"},
    aliases={
        "productCode": "product_code",
        "purchasePrice": "purchase_price",
        "supplierId": "supplier_id",
    },
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _validated_patch(partial: bool) -> dict:
    payload = request.get_json(silent=True)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch)
    return patch


@products_bp.get("")
@require_auth
def list_products():
    """List all products, newest first."""
    products = products_service.list_products()
    current_app.logger.info("Fetched %d products", len(products))
    return jsonify(products), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    product = products_service.get_product(product_id)
    if product is None:
        return jsonify({"error": f"Product with ID {product_id} not found"}), 404
    return jsonify(product), 200


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    """
    Create a new product.

    productCode is generated (PR001, PR002, ...) when omitted.
    Requires admin role.
    """
    try:
        patch = _validated_patch(partial=False)
        created = products_service.create_product(g.auth, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    current_app.logger.info("Created product %s (%s)", created["id"], created["productCode"])
    return jsonify(created), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    """
    Update a product (partial patch semantics).

    Requires admin role.
    """
    try:
        patch = _validated_patch(partial=True)
        updated = products_service.update_product(g.auth, product_id=product_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    if updated is None:
        return jsonify({"error": f"Product with ID {product_id} not found"}), 404

    current_app.logger.info("Updated product %s", product_id)
    return jsonify(updated), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    """
    Delete a product that has no recorded sales.

    Requires admin role.
    """
    try:
        deleted = products_service.delete_product(g.auth, product_id=product_id)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    if not deleted:
        return jsonify({"error": f"Product with ID {product_id} not found"}), 404

    current_app.logger.info("Deleted product %s", product_id)
    return jsonify({"message": "Product deleted successfully", "productId": product_id}), 200


@products_bp.post("/sale")
@require_auth
def process_sale_route():
    """
    Check out a basket: JSON array of {productId, quantitySold}.

    200 on full success, 400 for a rejected basket (nothing written),
    409 when the basket was partially applied, 503 when the database failed
    before anything was written.
    """
    try:
        basket = parse_basket(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    try:
        outcome = sales_service.process_sale(
            get_stock_ledger(),
            basket,
            attempts=current_app.config.get("SALE_WRITE_ATTEMPTS", 3),
        )
    except Exception:
        current_app.logger.exception("Failed to process sale")
        return jsonify({"success": False, "message": "Error processing sale"}), 500

    if outcome.ok:
        current_app.logger.info(
            "User %s sold %d line(s)", g.auth.user_id, outcome.items_processed
        )
    return jsonify(outcome.to_dict()), outcome.status_code


@products_bp.get("/sales")
@require_auth
@require_admin
def list_sales_route():
    """All sale rows, newest first. Requires admin role."""
    try:
        sales = products_service.list_sales(g.auth)
    except AuthorizationError as e:
        return jsonify({"error": "Permission denied", "message": str(e)}), 403
    return jsonify(sales), 200


@products_bp.get("/sales/daily")
@require_auth
def daily_sales_route():
    """Units sold and sale count per day."""
    rows = products_service.daily_sales()
    current_app.logger.info("Compiled %d days of sales data", len(rows))
    return jsonify(rows), 200
