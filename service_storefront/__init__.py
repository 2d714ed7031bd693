"""
Storefront service.
"""
