"""
Shopify storefront classification over HTTP.
"""
