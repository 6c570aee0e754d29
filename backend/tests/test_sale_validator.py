"""
Sale validator tests (in-memory ledger).

Verifies:
- Empty baskets and non-positive quantities are rejected
- Unknown products and short stock are reported with the offending product
- Lines for the same product are summed before the stock check
- Validation never writes
"""

from pharmapos.records import SaleLineRequest
from pharmapos.results import InsufficientStock, ProductNotFound, ValidationFailure
from pharmapos.services.sale_validator import check_basket_shape, requested_totals, validate_basket


def line(product_id, quantity):
    return SaleLineRequest(product_id=product_id, quantity_sold=quantity)


class TestBasketShape:
    def test_empty_basket(self):
        failure = check_basket_shape([])
        assert isinstance(failure, ValidationFailure)
        assert failure.line_index is None

    def test_zero_quantity_points_at_line(self):
        failure = check_basket_shape([line(1, 1), line(2, 0)])
        assert isinstance(failure, ValidationFailure)
        assert failure.line_index == 1

    def test_negative_quantity(self):
        assert isinstance(check_basket_shape([line(1, -3)]), ValidationFailure)

    def test_valid_shape(self):
        assert check_basket_shape([line(1, 1)]) is None


def test_requested_totals_sums_per_product_in_first_seen_order():
    totals = requested_totals([line(2, 1), line(1, 4), line(2, 3)])
    assert totals == {2: 4, 1: 4}
    assert list(totals) == [2, 1]


class TestValidateBasket:
    def test_accepts_servable_basket(self, ledger):
        assert validate_basket(ledger, [line(1, 4), line(2, 2)]) is None

    def test_unknown_product(self, ledger):
        failure = validate_basket(ledger, [line(1, 1), line(99, 1)])
        assert isinstance(failure, ProductNotFound)
        assert failure.product_id == 99
        assert failure.status_code == 400

    def test_insufficient_stock_reports_available_and_requested(self, ledger):
        failure = validate_basket(ledger, [line(2, 5)])
        assert failure == InsufficientStock(product_id=2, product_name="Bandages", available=2, requested=5)
        assert "Bandages" in failure.message

    def test_repeated_product_lines_are_summed(self, ledger):
        failure = validate_basket(ledger, [line(1, 8), line(1, 5)])
        assert isinstance(failure, InsufficientStock)
        assert failure.requested == 13
        assert failure.available == 10

    def test_exact_stock_is_enough(self, ledger):
        assert validate_basket(ledger, [line(3, 1)]) is None

    def test_validation_does_not_write(self, ledger):
        validate_basket(ledger, [line(1, 4), line(2, 5)])
        assert ledger.get_product(1).quantity == 10
        assert ledger.get_product(2).quantity == 2
        assert ledger.sales == []
