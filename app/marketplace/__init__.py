"""
Marketplace app: listings, offers, orders, shipment tracking and reviews.
"""
