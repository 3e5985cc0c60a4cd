"""
Balance consultation core: provider token and client, webhook correlation,
single and bulk consultation flows.
"""
