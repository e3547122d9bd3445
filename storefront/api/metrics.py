"""
모니터링 엔드포인트

/metrics: Prometheus 스크래핑
/health: 헬스 체크
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import Settings, get_settings
from storefront.models.base import get_db
from storefront.utils.prometheus_metrics import get_content_type, get_metrics

router = APIRouter(tags=["Monitoring"])


@router.get("/metrics")
async def metrics():
    """
    Prometheus 메트릭 노출

    ```yaml
    # prometheus.yml
    scrape_configs:
      - job_name: 'storefront-backend'
        scrape_interval: 15s
        static_configs:
          - targets: ['storefront-backend:8000']
    ```
    """
    return Response(content=get_metrics(), media_type=get_content_type())


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """헬스 체크 (데이터베이스 연결 포함)"""
    await db.execute(text("SELECT 1"))
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENV,
    }
