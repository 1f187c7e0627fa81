"""Site configuration API routes.

Endpoints:
    GET  /api/nginx  - List all sites from sites-available and conf.d
    POST /api/nginx  - Run an action: enable, disable, create, update,
                       delete, generate-ssl
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from nginx_manager.errors import InvalidDirectiveError, InvalidSiteNameError, NginxManagerError
from nginx_manager.model.site import LocationRule, SiteConfig, StorageClass
from nginx_manager.web.services import Services, get_services

router = APIRouter()

ACTIONS = ("enable", "disable", "create", "update", "delete", "generate-ssl")


class LocationPayload(BaseModel):
    """A location block in a create/update request."""

    path: str = Field(..., min_length=1, description="Location match, e.g. / or /api")
    proxy_pass: Optional[str] = Field(None, description="Upstream URL, e.g. http://127.0.0.1:3000")


class SitePayload(BaseModel):
    """Site definition in a create/update request."""

    server_name: str = Field(..., min_length=1, description="Domain served by this site")
    listen: str = Field(..., min_length=1, description="Port or address:port")
    root: str = Field("", description="Document root")
    locations: List[LocationPayload] = Field(default_factory=list)

    def to_site(self, storage_class: StorageClass) -> SiteConfig:
        return SiteConfig(
            server_name=self.server_name,
            listen=self.listen,
            root=self.root,
            locations=[LocationRule(path=loc.path, proxy_target=loc.proxy_pass) for loc in self.locations],
            storage_class=storage_class,
        )


class SiteActionRequest(BaseModel):
    """Request body for POST /api/nginx."""

    model_config = ConfigDict(populate_by_name=True)

    action: str = Field(..., description=f"One of: {', '.join(ACTIONS)}")
    config_name: Optional[str] = Field(None, alias="configName", description="Target site name")
    config: Optional[SitePayload] = Field(None, description="Site definition for create/update")
    source: str = Field(StorageClass.AVAILABLE.value, description="sites-available or conf.d")
    email: Optional[str] = Field(None, description="Contact email for generate-ssl")


@router.get("/nginx")
def list_sites(services: Services = Depends(get_services)) -> list:
    """List all parsed site configurations."""
    return [site.to_dict() for site in services.store.list_sites()]


@router.post("/nginx")
def run_site_action(request: SiteActionRequest, services: Services = Depends(get_services)) -> dict:
    """Apply a site action, followed by an nginx reload."""
    if request.action not in ACTIONS:
        raise HTTPException(status_code=400, detail="Invalid action")

    try:
        storage_class = StorageClass.parse(request.source)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    store = services.store
    try:
        if request.action == "create":
            store.create(_require_config(request).to_site(storage_class), storage_class)
        elif request.action == "update":
            store.update(_require_name(request), _require_config(request).to_site(storage_class), storage_class)
        elif request.action == "enable":
            store.enable(_require_name(request))
        elif request.action == "disable":
            store.disable(_require_name(request))
        elif request.action == "delete":
            store.delete(_require_name(request), storage_class)
        elif request.action == "generate-ssl":
            if not request.email:
                raise HTTPException(status_code=400, detail="Email is required for SSL generation")
            store.generate_tls(_require_name(request), request.email)
    except (InvalidSiteNameError, InvalidDirectiveError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except NginxManagerError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    return {"success": True}


def _require_name(request: SiteActionRequest) -> str:
    if not request.config_name:
        raise HTTPException(status_code=400, detail="configName is required")
    return request.config_name


def _require_config(request: SiteActionRequest) -> SitePayload:
    if request.config is None:
        raise HTTPException(status_code=400, detail="config is required")
    return request.config
