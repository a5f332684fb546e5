"""Cloud Functions entry point for Excel Template Filler."""

import functions_framework


@functions_framework.http
def excel_template_filler(request):
    """Cloud Function entry point - delegates to the package handler."""
    from excel_template_filler.main import excel_template_filler as handler
    return handler(request)
