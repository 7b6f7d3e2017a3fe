from django.utils.deprecation import MiddlewareMixin

from .models import Company


class CurrentCompanyMiddleware(MiddlewareMixin):
    """Attach request.company for the logged-in user.

    Views pass request.company explicitly into every service call;
    nothing below the view layer reads the request.
    """

    def process_request(self, request):
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            request.company = None
            return

        # fall back to the user's default company
        request.company = getattr(user, "default_company", None)

        # a company switch is stored in the session
        company_id = request.session.get("active_company_id")
        if company_id:
            # the user must be an active member, otherwise a tampered
            # session could jump into another tenant
            request.company = Company.objects.filter(
                id=company_id,
                memberships__user=user,
                memberships__is_active=True,
            ).first()
