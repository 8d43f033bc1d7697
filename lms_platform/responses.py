from rest_framework.response import Response


class EnvelopeMixin:
    """
    Wrap successful payloads as { "success": true, "data": ... }.
    Error payloads are already enveloped by the exception handler.
    """

    def finalize_response(self, request, response, *args, **kwargs):
        if isinstance(response, Response) and response.data is not None:
            data = response.data
            if not (isinstance(data, dict) and 'success' in data):
                response.data = {'success': response.status_code < 400, 'data': data}
        return super().finalize_response(request, response, *args, **kwargs)
