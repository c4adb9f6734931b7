import logging
from decimal import Decimal
from src.models.base_model import CustomerStats
from src.reconciliation.normalizer import average_order_value
from src.utils import to_decimal, CENTS


def compute_customer_stats(order_totals) -> CustomerStats:
    """
    Derive orders_count / total_spent / average_order_value from the total
    price of every stored order of one customer. Exact Decimal arithmetic, so
    the result depends only on the set of orders, not on arrival order.
    """
    totals = [to_decimal(total, Decimal("0.00")) for total in order_totals]
    total_spent = sum(totals, Decimal("0.00")).quantize(CENTS)
    return CustomerStats(
        orders_count=len(totals),
        total_spent=total_spent,
        average_order_value=average_order_value(total_spent, len(totals)),
    )


async def recompute_customer_stats(db_manager, customer_id: str) -> CustomerStats:
    """Read the customer's stored orders and derive its stats from them."""
    stats = compute_customer_stats(await db_manager.list_order_totals(customer_id))
    logging.info(f"Stats recomputed for customer {customer_id}: orders={stats.orders_count}, total_spent={stats.total_spent}, average={stats.average_order_value}")
    return stats


def stats_differ(customer, stats: CustomerStats) -> bool:
    return (
        customer.orders_count != stats.orders_count
        or to_decimal(customer.total_spent, Decimal("0.00")) != stats.total_spent
        or to_decimal(customer.average_order_value, Decimal("0.00")) != stats.average_order_value
    )
