"""
Transactional operations behind the API views.

Every function takes the authenticated ``caller`` explicitly, raises the
errors in ``core.exceptions`` on rejection and returns model instances or
plain dicts on success.
"""
