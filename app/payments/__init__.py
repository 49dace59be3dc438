"""
Payments app for the money side of marketplace orders.

This app handles:
- Payment records carrying the financial breakdown of an order
- Escrow payouts released to sellers through Stripe Connect transfers
- Retrying payout releases after transient Stripe failures

Related apps:
    - marketplace: Orders that own a Payment and a Payout
    - audit: Records every released payout

Usage:
    from payments.services import PayoutService

    result = PayoutService().release_payout_for_order(order.id, actor=admin)
"""
