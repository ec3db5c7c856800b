"""
Audit API views

- POST /api/analyze/          streamed analysis (raw async view, SSE)
- GET  /api/audits/<id>/      stored audit record
- GET  /api/etherscan/        contract source lookup by address
"""
import json
import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.http import JsonResponse, StreamingHttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import APIException
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps.common.exceptions import ValidationFailure
from apps.common.llm_providers import get_llm_provider

from .etherscan import fetch_contract_source, is_valid_address
from .orchestrator import AnalysisOrchestrator, validate_analysis_request
from .serializers import AuditRecordSerializer
from .store import AuditStore

logger = logging.getLogger(__name__)


def _apply_stream_headers(request, response):
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'

    # CORS headers
    origin = request.META.get('HTTP_ORIGIN', '')
    allowed_origins = getattr(settings, 'CORS_ALLOWED_ORIGINS', [])
    if origin in allowed_origins:
        response['Access-Control-Allow-Origin'] = origin
        response['Access-Control-Allow-Credentials'] = 'true'
    return response


@csrf_exempt
@require_POST
async def analyze_stream(request):
    """
    SSE endpoint for a single contract audit.

    POST /api/analyze/
    {
        "code": "pragma solidity ...",      // required, >= 10 non-blank chars
        "contractAddress": "0x...",         // optional
        "source": "paste" | "etherscan"     // optional, default "paste"
    }

    Validation errors are plain 400 responses; once the stream is open every
    failure arrives as an `error` event and the stream still ends with
    `data: [DONE]`.
    """
    try:
        body = json.loads(request.body or b'null')
        analysis_request = validate_analysis_request(body)
    except ValueError:
        return JsonResponse({'error': 'Invalid request.'}, status=400)
    except ValidationFailure as e:
        return JsonResponse({'error': str(e.detail)}, status=e.status_code)

    try:
        provider = get_llm_provider('audit')
    except ImproperlyConfigured as e:
        logger.error("audit_provider_not_configured: %s", e)
        return JsonResponse({'error': str(e)}, status=500)

    orchestrator = AnalysisOrchestrator(
        provider=provider,
        correlation_id=getattr(request, 'correlation_id', None),
    )
    response = StreamingHttpResponse(
        orchestrator.stream(analysis_request),
        content_type='text/event-stream',
    )
    return _apply_stream_headers(request, response)


@api_view(['GET'])
@permission_classes([AllowAny])
def audit_detail(request, audit_id):
    """
    Stored audit by identifier.

    GET /api/audits/{audit_id}/
    """
    try:
        record = AuditStore().get(audit_id)
    except APIException as e:
        return Response({'error': str(e.detail)}, status=e.status_code)
    return Response(AuditRecordSerializer(record).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def contract_source(request):
    """
    Resolve a verified contract address to its source code.

    GET /api/etherscan/?address=0x...

    Returns:
    {
        "sourceCode": "...",       // multi-file bundles are concatenated
        "contractName": "Token",
        "compiler": "v0.8.20+commit..."
    }
    """
    address = (request.query_params.get('address') or '').strip()
    if not is_valid_address(address):
        return Response(
            {'error': 'Invalid Ethereum address.'},
            status=status.HTTP_400_BAD_REQUEST,
        )

    try:
        source = fetch_contract_source(address)
    except APIException as e:
        return Response({'error': str(e.detail)}, status=e.status_code)

    return Response(source.to_response())
