"""
Service layer: access control and the async translation facade.
"""
