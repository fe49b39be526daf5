# throttles.py
from rest_framework.throttling import SimpleRateThrottle


class CheckoutThrottle(SimpleRateThrottle):
    scope = 'checkout'

    def get_cache_key(self, request, view):
        if request.method != 'POST':
            return None

        if request.user.is_authenticated:
            ident = request.user.pk
        else:
            ident = self.get_ident(request)

        return self.cache_format % {
            'scope': self.scope,
            'ident': ident
        }
