"""
Transaction List Endpoint

Endpoints:
- /transactions - Filtered, sorted, paginated transaction list
"""

from flask import jsonify
from routes.analytics import analytics_bp
from routes.analytics._param_utils import first_or_none, parse_params, request_params
from constants import DEFAULT_PAGE_SIZE, DEFAULT_TRANSACTION_SORT, MAX_PAGE_SIZE
from schemas.filters import FilterConfig
from utils.normalize import to_int, to_str


@analytics_bp.route("/transactions", methods=["GET"])
def transactions():
    """
    Filtered transactions for the table view.

    Query params:
        Filters:
        - startDate, endDate, propertyType, tenure, streetName

        Sorting:
        - sort: sale_date (default), street_name, property_type,
                transacted_price, area_sqft, unit_price_psf, tenure, profit
        - order: asc | desc (default desc)

        Pagination:
        - page: Page number (default 1)
        - limit: Records per page (default 10, max 500)

    Example:
        GET /api/transactions?tenure=Freehold&sort=unit_price_psf&order=desc&page=2
    """
    from services.dashboard_service import get_transactions_page

    raw = request_params()
    filters = parse_params(FilterConfig, raw)

    result = get_transactions_page(
        filters,
        sort=to_str(first_or_none(raw.get('sort')), default=DEFAULT_TRANSACTION_SORT),
        order=to_str(first_or_none(raw.get('order')), default='desc'),
        page=to_int(first_or_none(raw.get('page')), default=1, min_value=1, field='page'),
        limit=to_int(
            first_or_none(raw.get('limit')),
            default=DEFAULT_PAGE_SIZE, min_value=1, max_value=MAX_PAGE_SIZE, field='limit',
        ),
    )
    return jsonify(result)
