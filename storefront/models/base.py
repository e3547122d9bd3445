"""
SQLAlchemy Base 모델 및 데이터베이스 세션 관리

이 모듈은 모든 데이터베이스 모델의 기본 클래스와 비동기 데이터베이스 세션을 제공합니다.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator

from sqlalchemy import Column, DateTime, MetaData
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from storefront.config import settings


# 네이밍 컨벤션 정의 (Alembic 마이그레이션 시 일관된 제약 조건 이름 생성)
convention = {
    "ix": "ix_%(column_0_label)s",  # 인덱스
    "uq": "uq_%(table_name)s_%(column_0_name)s",  # UNIQUE 제약
    "ck": "ck_%(table_name)s_%(constraint_name)s",  # CHECK 제약
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",  # 외래 키
    "pk": "pk_%(table_name)s",  # 기본 키
}

metadata = MetaData(naming_convention=convention)


def utcnow() -> datetime:
    """UTC 기준 현재 시각 (timezone 정보 없는 naive datetime)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """
    모든 데이터베이스 모델의 기본 클래스

    이 클래스를 상속받는 모든 모델은 자동으로 SQLAlchemy ORM 기능을 사용할 수 있습니다.
    """

    metadata = metadata


class TimestampMixin:
    """
    생성/수정 시간 자동 추적 Mixin

    이 Mixin을 상속받으면 created_at과 updated_at 컬럼이 자동으로 추가됩니다.
    """

    created_at = Column(DateTime, nullable=False, default=utcnow, comment="생성 일시")
    updated_at = Column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow, comment="수정 일시"
    )


def _engine_options(database_url: str) -> dict:
    """드라이버별 엔진 옵션 (SQLite는 커넥션 풀 옵션을 지원하지 않음)"""
    options = {"echo": settings.SQL_ECHO}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,  # 연결 전 핑 테스트 (연결 끊김 방지)
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    return options


# 비동기 엔진 생성
engine = create_async_engine(
    settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL)
)

# 비동기 세션 팩토리
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # 커밋 후 객체 만료 방지
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 의존성 주입용 데이터베이스 세션 생성기

    요청이 정상 종료되면 커밋하고, 예외가 발생하면 롤백 후 예외를 다시 전파합니다.

    Yields:
        AsyncSession: 비동기 데이터베이스 세션
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    데이터베이스 초기화 (테이블 생성)

    주의: 프로덕션 환경에서는 Alembic 마이그레이션을 사용하세요.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db() -> None:
    """모든 테이블 삭제 (테스트용)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def close_db() -> None:
    """
    데이터베이스 연결 종료

    애플리케이션 종료 시 호출하여 모든 연결을 정리합니다.
    """
    await engine.dispose()


async def insert_if_absent(
    session: AsyncSession, model, conflict_columns: list[str], **values
) -> None:
    """
    유니크 키 충돌 시 아무것도 하지 않는 INSERT (지연 생성 행 전용)

    동시에 첫 접근이 일어나도 한 행만 생성되며, 이후 조회는 항상 같은 행을 반환합니다.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"지원하지 않는 데이터베이스입니다: {dialect}")

    stmt = (
        insert(model.__table__)
        .values(**values)
        .on_conflict_do_nothing(index_elements=conflict_columns)
    )
    await session.execute(stmt)
