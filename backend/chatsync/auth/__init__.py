"""Authentication module.

Services:
    - AuthSessionGateway: validation, retries and error classification
      around an IdentityProvider.
"""
