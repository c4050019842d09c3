"""ServiceProviderConfig роутер для SCIM API"""

from fastapi import APIRouter, Request
from typing import Dict, Any, List

from ..config import settings, scim_base_url
from ..models.scim import SCIMSchema
from ..utils.responses import SCIMResponse

router = APIRouter(tags=["service-provider-config"])


def _authentication_schemes() -> List[Dict[str, Any]]:
    schemes = []
    if settings.bearer_tokens:
        schemes.append({
            "type": "oauthbearertoken",
            "name": "OAuth Bearer Token",
            "description": "Authentication scheme using the OAuth Bearer Token Standard",
            "specUri": "https://tools.ietf.org/html/rfc6750",
            "primary": True
        })
    if settings.basic_credentials:
        schemes.append({
            "type": "httpbasic",
            "name": "HTTP Basic",
            "description": "Authentication scheme using the HTTP Basic Standard",
            "specUri": "https://tools.ietf.org/html/rfc2617",
            "primary": not schemes
        })
    return schemes


def service_provider_config() -> Dict[str, Any]:
    """Конфигурация SCIM сервиса согласно RFC 7643 §5, собранная из настроек"""
    config = {
        "schemas": [SCIMSchema.SERVICE_PROVIDER_CONFIG.value],
        "patch": {"supported": settings.patch_supported},
        "bulk": {
            "supported": settings.bulk_supported,
            "maxOperations": settings.bulk_max_operations if settings.bulk_supported else 0,
            "maxPayloadSize": settings.bulk_max_payload_size if settings.bulk_supported else 0
        },
        "filter": {
            "supported": settings.filter_supported,
            "maxResults": settings.filter_max_results
        },
        "changePassword": {"supported": settings.change_password_supported},
        "sort": {"supported": settings.sort_supported},
        "etag": {"supported": settings.etag_supported},
        "authenticationSchemes": _authentication_schemes(),
        "meta": {
            "location": f"{scim_base_url()}/ServiceProviderConfig",
            "resourceType": "ServiceProviderConfig"
        }
    }
    if settings.documentation_uri:
        config["documentationUri"] = settings.documentation_uri
    return config


@router.get("/ServiceProviderConfig")
async def get_service_provider_config(request: Request) -> SCIMResponse:
    """Возвращает конфигурацию SCIM сервиса"""
    return SCIMResponse(content=service_provider_config())
