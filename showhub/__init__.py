"""Tech's Show Hub - Backend.

A product-hunt style listing API: members submit products, vote and review
them, moderators accept/reject and handle reports, admins manage roles and
coupons.

Core concepts:
- Identity is an email carried in a short-lived bearer token.
- Roles are stored on the user document and checked fresh per request.
- Posting a product consumes one unit of the owner's ``limit``; deleting it
  gives the unit back.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
