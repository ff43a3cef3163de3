"""Catalog blueprint - sellable products with their current prices."""
from flask import Blueprint, jsonify, request
from portal.database import get_session
from portal.middleware import require_login
from portal.services.catalog_service import get_catalog


catalog_bp = Blueprint('catalog', __name__, url_prefix='/catalog')


@catalog_bp.route('', methods=['GET'])
@require_login
def products_list():
    """Active products, optionally filtered by ?category="""
    products = get_catalog(get_session(), request.args.get('category') or None)
    return jsonify({'products': products})
