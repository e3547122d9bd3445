"""
스토어프론트 FastAPI 메인 애플리케이션

주문 생명주기, 환불, 지갑, 할인/오퍼, 추천인 기능을 제공하는 백엔드 API 서버입니다.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from storefront.config import get_settings
from storefront.models.base import close_db
from storefront.utils.exceptions import AppException
from storefront.utils.logging import get_logger, setup_logging
from storefront.utils.sentry_config import init_sentry

# API 라우터
from storefront.api.orders import router as orders_router
from storefront.api.wallet import router as wallet_router
from storefront.api.promotions import router as promotions_router
from storefront.api.offers import router as offers_router
from storefront.api.referrals import router as referrals_router
from storefront.api.metrics import router as metrics_router

# Admin API 라우터
from storefront.api.admin.orders import router as admin_orders_router
from storefront.api.admin.referrals import router as admin_referrals_router

from storefront.middleware.prometheus import PrometheusMiddleware

settings = get_settings()

# 로깅 설정
setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT, settings.LOG_FILE)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 라이프사이클 관리

    시작 시: 에러 트래킹 초기화
    종료 시: 데이터베이스 연결 정리
    """
    logger.info("스토어프론트 서버 시작 중...")

    init_sentry(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT or settings.ENV,
        release=settings.APP_VERSION,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
    )

    logger.info("서버 시작 완료")
    yield

    logger.info("스토어프론트 서버 종료 중...")
    await close_db()
    logger.info("서버 종료 완료")


# FastAPI 애플리케이션 인스턴스
app = FastAPI(
    title="Storefront - 이커머스 주문/결제 API",
    description="""
## 이커머스 주문/결제 백엔드

### 주요 기능

- **주문**: 서버 계산 가격, 오퍼/할인 코드 적용, 착불/온라인/지갑 결제
- **취소/반품**: 항목 단위 취소, 반품 요청 및 관리자 검수
- **환불**: 할인/오퍼/배송비를 항목별로 안분한 금액을 지갑으로 입금
- **지갑**: 잔액 한도, 거래 내역, 결제 게이트웨이 충전
- **추천인**: 추천 코드/링크, 추천인 보상 쿠폰
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# CORS 미들웨어 설정 (프론트엔드 연동)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.PROMETHEUS_ENABLED:
    app.add_middleware(PrometheusMiddleware)


# 전역 예외 핸들러
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """애플리케이션 정의 예외 처리"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"AppException: {exc.message}",
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """요청 본문/파라미터 검증 실패 (400, 필드별 오류 목록)"""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(f"RequestValidationError: path={request.url.path}, errors={len(errors)}")
    return JSONResponse(
        status_code=400,
        content={
            "error": "validation_error",
            "message": "입력 데이터가 유효하지 않습니다.",
            "details": {"errors": errors},
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """모든 예외를 캐치하는 최종 핸들러"""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    if settings.DEBUG and not settings.is_production:
        message = str(exc)
    else:
        message = "서버 내부 오류가 발생했습니다. 잠시 후 다시 시도해주세요."
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "message": message},
    )


@app.get("/", tags=["Health"])
async def root():
    """루트 엔드포인트"""
    return {
        "service": settings.APP_NAME,
        "status": "running",
        "version": settings.APP_VERSION,
    }


# API 라우터 등록
app.include_router(orders_router)
app.include_router(wallet_router)
app.include_router(promotions_router)
app.include_router(offers_router)
app.include_router(referrals_router)
app.include_router(metrics_router)

# Admin 라우터 등록
app.include_router(admin_orders_router)
app.include_router(admin_referrals_router)


if __name__ == "__main__":
    # 개발 서버 실행
    uvicorn.run(
        "storefront.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower(),
    )
