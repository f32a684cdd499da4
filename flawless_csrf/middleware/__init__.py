from .csrf import CSRFMiddleware, csrf, csrf_protect

__all__ = ["CSRFMiddleware", "csrf", "csrf_protect"]
