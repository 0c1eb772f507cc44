"""
Quiz-driven product recommendation service.

Shoppers answer a storefront quiz; their answers are matched against the
catalog and the completion is recorded with analytics and usage accounting.
"""
