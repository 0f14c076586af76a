"""Listing-site collections: products (with votes, reviews and moderation),
coupons, reports, and the admin roll-up counts."""
