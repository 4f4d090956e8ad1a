"""
Core — Response Renderer

Successful responses go out as ``{"success": true, "data": ...}``; list
endpoints add a ``meta`` block with the paging fields. Error bodies are
already shaped by core.exceptions.standard_exception_handler.

@file core/renderers.py
"""

from rest_framework.renderers import JSONRenderer

PAGING_KEYS = ('count', 'page', 'pages', 'next', 'previous')


class StandardJSONRenderer(JSONRenderer):

    def render(self, data, accepted_media_type=None, renderer_context=None):
        response = (renderer_context or {}).get('response')
        already_wrapped = isinstance(data, dict) and 'success' in data
        if already_wrapped or (response is not None and response.status_code >= 400):
            return super().render(data, accepted_media_type, renderer_context)

        if isinstance(data, dict) and 'results' in data:
            envelope = {
                'success': True,
                'data': data['results'],
                'meta': {key: data.get(key) for key in PAGING_KEYS},
            }
        else:
            envelope = {'success': True, 'data': data}
        return super().render(envelope, accepted_media_type, renderer_context)
