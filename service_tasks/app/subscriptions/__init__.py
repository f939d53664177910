"""
Subscription access checks and the premium gate for task routes.
"""
