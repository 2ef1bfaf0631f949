"""Industry intelligence API package.

Stripe checkout/webhook proxy plus parameterized read queries over company,
industry and financial data. The ASGI app lives in ``apps.api.intel.main``.
"""
