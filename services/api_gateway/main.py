import asyncio
import json
import time
from datetime import datetime

import httpx
from fastapi import FastAPI, Request, Response

from shared.utils import settings
from shared.logging_config import setup_logging, RequestLoggingMiddleware, get_request_id
from shared.security_config import setup_edge_middleware, limiter

SERVICE_NAME = "api-gateway"

SERVICES = {
    "cart-service": settings.CART_SERVICE_URL,
    "order-service": settings.ORDER_SERVICE_URL,
    "review-service": settings.REVIEW_SERVICE_URL,
    "session-service": settings.SESSION_SERVICE_URL,
    "user-service": settings.USER_SERVICE_URL,
}

# Prefix under /api -> (service base URL, path prefix on that service)
ROUTES = {
    "cart": (SERVICES["cart-service"], "/cart"),
    "orders": (SERVICES["order-service"], "/orders"),
    "reviews": (SERVICES["review-service"], "/reviews"),
    "sessions": (SERVICES["session-service"], "/sessions"),
    "users": (SERVICES["user-service"], "/users"),
}

HOP_BY_HOP_HEADERS = {"host", "content-length", "connection", "transfer-encoding"}

# httpx transport for downstream calls; None uses the network
upstream_transport = None

# Setup Logging
logger = setup_logging(SERVICE_NAME)

app = FastAPI(title="API Gateway")
setup_edge_middleware(app)
app.add_middleware(RequestLoggingMiddleware, service_name=SERVICE_NAME)

# --- Proxy Logic ---

async def forward_request(service_url: str, request: Request, path: str):
    headers = {
        k: v for k, v in request.headers.items()
        if k.lower() not in HOP_BY_HOP_HEADERS and k.lower() != "x-request-id"
    }

    request_id = get_request_id(request)
    if request_id:
        headers["X-Request-ID"] = request_id

    url = f"{service_url}{path}"
    if request.url.query:
        url += f"?{request.url.query}"

    start_time = time.time()
    logger.info("Calling Downstream Service", extra={
        "target": service_url,
        "path": path,
        "method": request.method,
        "request_id": request_id
    })

    async with httpx.AsyncClient(transport=upstream_transport) as client:
        try:
            resp = await client.request(
                method=request.method,
                url=url,
                headers=headers,
                content=await request.body(),
                timeout=10.0
            )
        except httpx.RequestError:
            logger.error("Downstream Service Unreachable", extra={
                "target": service_url, "path": path, "request_id": request_id
            })
            return Response(content="Service Unavailable", status_code=503)

    logger.info("Downstream Call Completed", extra={
        "target": service_url,
        "path": path,
        "status_code": resp.status_code,
        "duration_ms": round((time.time() - start_time) * 1000, 2),
        "request_id": request_id
    })

    response_headers = {
        k: v for k, v in resp.headers.items()
        if k.lower() not in HOP_BY_HOP_HEADERS and k.lower() != "content-encoding"
    }
    return Response(content=resp.content, status_code=resp.status_code, headers=response_headers)

# --- Routes ---

async def check_service(url: str, name: str):
    start = time.time()
    status_val = "unhealthy"
    details = None
    try:
        async with httpx.AsyncClient(transport=upstream_transport) as client:
            res = await client.get(f"{url}/health", timeout=2.0)
        if res.status_code == 200:
            try:
                details = res.json()
                status_val = "healthy"
            except ValueError:
                details = {"error": "Unreadable health payload", "body": res.text[:200]}
        else:
            details = {"error": f"Status {res.status_code}"}
    except httpx.RequestError as e:
        status_val = "unreachable"
        details = {"error": str(e)}

    return {
        "service": name,
        "status": status_val,
        "latency": f"{time.time() - start:.4f}s",
        "details": details
    }

@app.get("/health")
async def health_check():
    results = await asyncio.gather(*(
        check_service(base_url, name) for name, base_url in SERVICES.items()
    ))

    overall_status = "healthy" if all(r["status"] == "healthy" for r in results) else "unhealthy"
    response_data = {
        "service": SERVICE_NAME,
        "status": overall_status,
        "timestamp": datetime.utcnow().isoformat(),
        "version": "1.0.0",
        "services": results
    }

    if overall_status == "unhealthy":
        # 503, body still lists every service
        return Response(
            content=json.dumps(response_data),
            status_code=503,
            media_type="application/json"
        )

    return response_data

@app.api_route("/api/{prefix}{path:path}", methods=["GET", "POST", "PUT", "DELETE"])
@limiter.limit("100/minute")
async def proxy(request: Request, prefix: str, path: str):
    # /api/orders/123 -> order-service /orders/123
    if prefix not in ROUTES:
        return Response(content="Not Found", status_code=404)
    service_url, service_prefix = ROUTES[prefix]
    return await forward_request(service_url, request, f"{service_prefix}{path}")
