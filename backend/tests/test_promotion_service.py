from datetime import date, timedelta

from poscore.services.promotion_service import (
    PromotionRule,
    best_promotion,
    discount_for_line,
    applies_to_line,
    get_active_promotions,
)


def _rule(id, promo_type="percentage", value=1000, min_purchase=0, applies_to_type="all", applies_to_id=None):
    return PromotionRule(
        id=id,
        title=f"Rule {id}",
        promo_type=promo_type,
        discount_value=value,
        min_purchase_cents=min_purchase,
        applies_to_type=applies_to_type,
        applies_to_id=applies_to_id,
    )


def test_percentage_discount_is_basis_points_of_line_total():
    assert discount_for_line(_rule(1, value=1000), 20000) == 2000
    # 12.5% of 333 = 41.625 -> 42
    assert discount_for_line(_rule(1, value=1250), 333) == 42


def test_fixed_discount_is_capped_at_line_total():
    assert discount_for_line(_rule(1, promo_type="fixed", value=500), 20000) == 500
    assert discount_for_line(_rule(1, promo_type="fixed", value=5000), 1200) == 1200


def test_free_shipping_gives_no_line_discount():
    assert discount_for_line(_rule(1, promo_type="free_shipping", value=100), 20000) == 0


def test_applicability_by_category_and_product():
    by_category = _rule(1, applies_to_type="category", applies_to_id="7")
    by_product = _rule(2, applies_to_type="product", applies_to_id="SKU-1")

    assert applies_to_line(by_category, "X", 7)
    assert not applies_to_line(by_category, "X", 8)
    assert not applies_to_line(by_category, "X", None)
    assert applies_to_line(by_product, "SKU-1", None)
    assert not applies_to_line(by_product, "SKU-2", None)


def test_largest_discount_wins():
    rules = [_rule(1, value=500), _rule(2, promo_type="fixed", value=3000), _rule(3, value=1000)]
    match = best_promotion("A", None, 10000, 2, rules)
    assert match.promotion.id == 2
    assert match.discount_cents == 3000


def test_tie_keeps_first_rule():
    rules = [_rule(1, value=1000), _rule(2, promo_type="fixed", value=2000)]
    match = best_promotion("A", None, 10000, 2, rules)
    assert match.promotion.id == 1
    assert match.discount_cents == 2000


def test_min_purchase_excludes_small_lines():
    rules = [_rule(1, value=5000, min_purchase=50000)]
    assert best_promotion("A", None, 10000, 2, rules) is None


def test_zero_discount_never_selected():
    rules = [_rule(1, promo_type="free_shipping"), _rule(2, value=0)]
    assert best_promotion("A", None, 10000, 1, rules) is None


def test_selection_is_deterministic():
    rules = [_rule(i, value=1000) for i in range(1, 6)]
    picks = {best_promotion("A", None, 999, 3, rules).promotion.id for _ in range(20)}
    assert picks == {1}


def test_active_promotions_filter_window_method_and_channel(db_session, make_promotion):
    today = date.today()
    active = make_promotion(title="active")
    make_promotion(title="expired", expiration_date=today - timedelta(days=1))
    make_promotion(title="future", activation_date=today + timedelta(days=2), expiration_date=today + timedelta(days=5))
    make_promotion(title="voucher", application_method="voucher")
    make_promotion(title="online only", sale_channel="online")
    in_store = make_promotion(title="in-store", sale_channel="in-store")

    rules = get_active_promotions(today)
    assert [r.id for r in rules] == [active.id, in_store.id]
