"""
지갑 서비스

목적: 지갑 잔액 입출금, 거래 내역 조회, 게이트웨이 충전
- 지갑은 첫 접근 시 자동 생성 (user_id 유니크 키 기반 insert-if-absent)
- 잔액 변경과 거래 내역 추가는 같은 flush 에서 처리되며,
  행 잠금(SELECT ... FOR UPDATE)과 version_id 낙관적 잠금으로 동시 갱신 유실을 방지
- credit/debit 은 호출자 트랜잭션 안에서 동작하고 커밋하지 않음
"""

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from storefront.config import Settings, get_settings
from storefront.models.base import insert_if_absent
from storefront.models.wallet import TransactionType, Wallet, WalletTransaction
from storefront.services.payment_gateway import RazorpayGateway
from storefront.utils.exceptions import (
    BalanceCapExceededException,
    ConflictException,
    ForbiddenException,
    InsufficientBalanceException,
    InvalidAmountException,
    PaymentSignatureException,
    PaymentVerificationException,
)
from storefront.utils.logging import audit_logger, get_logger
from storefront.utils.money import ZERO, from_paise, round_money, to_decimal, to_paise
from storefront.utils.prometheus_metrics import record_wallet_operation

logger = get_logger(__name__)


class WalletService:
    """지갑 서비스"""

    def __init__(self, db_session: AsyncSession, settings: Optional[Settings] = None):
        self.db = db_session
        self.settings = settings or get_settings()

    async def get_wallet(self, user_id: UUID, for_update: bool = False) -> Wallet:
        """
        지갑 조회 (없으면 잔액 0으로 생성)

        Args:
            user_id: 사용자 ID
            for_update: 행 잠금 여부 (입출금 시 True)
        """
        await insert_if_absent(
            self.db,
            Wallet,
            ["user_id"],
            user_id=user_id,
            balance=ZERO,
            version_id=1,
        )

        query = (
            select(Wallet)
            .where(Wallet.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        return result.scalar_one()

    async def _apply(
        self,
        wallet: Wallet,
        tx_type: TransactionType,
        amount: Decimal,
        new_balance: Decimal,
        description: str,
        payment_id: Optional[str] = None,
        order_id: Optional[UUID] = None,
        order_item_id: Optional[UUID] = None,
    ) -> WalletTransaction:
        transaction = WalletTransaction(
            wallet_id=wallet.id,
            type=tx_type.value,
            amount=amount,
            balance_after=new_balance,
            description=description,
            payment_id=payment_id,
            order_id=order_id,
            order_item_id=order_item_id,
        )
        wallet.balance = new_balance
        self.db.add(transaction)

        try:
            await self.db.flush()
        except StaleDataError as e:
            logger.warning(f"지갑 동시 수정 감지: wallet_id={wallet.id}")
            raise ConflictException(
                "지갑이 다른 요청에 의해 변경되었습니다. 다시 시도해주세요.",
                details={"wallet_id": str(wallet.id)},
            ) from e
        except IntegrityError as e:
            if payment_id:
                raise ConflictException(
                    "이미 처리된 결제입니다.", details={"payment_id": payment_id}
                ) from e
            raise

        record_wallet_operation(tx_type.value)
        audit_logger.log_event(
            event_type=f"wallet.{tx_type.value}",
            user_id=wallet.user_id,
            resource_type="wallet",
            resource_id=wallet.id,
            action=tx_type.value,
            details={
                "amount": str(amount),
                "balance_after": str(new_balance),
                "order_id": str(order_id) if order_id else None,
                "payment_id": payment_id,
            },
        )
        return transaction

    async def credit(
        self,
        user_id: UUID,
        amount,
        description: str,
        payment_id: Optional[str] = None,
        order_id: Optional[UUID] = None,
        order_item_id: Optional[UUID] = None,
    ) -> WalletTransaction:
        """
        지갑 입금

        Raises:
            InvalidAmountException: 금액이 0 이하
            BalanceCapExceededException: 입금 후 잔액이 최대 잔액을 초과
        """
        amount = round_money(to_decimal(amount))
        if amount <= 0:
            raise InvalidAmountException(amount=amount)

        wallet = await self.get_wallet(user_id, for_update=True)
        new_balance = round_money(Decimal(wallet.balance) + amount)
        if new_balance > self.settings.WALLET_MAX_BALANCE:
            raise BalanceCapExceededException(
                round_money(self.settings.WALLET_MAX_BALANCE),
                round_money(wallet.balance),
            )

        return await self._apply(
            wallet,
            TransactionType.CREDIT,
            amount,
            new_balance,
            description,
            payment_id=payment_id,
            order_id=order_id,
            order_item_id=order_item_id,
        )

    async def debit(
        self,
        user_id: UUID,
        amount,
        description: str,
        order_id: Optional[UUID] = None,
    ) -> WalletTransaction:
        """
        지갑 출금

        Raises:
            InvalidAmountException: 금액이 0 이하
            InsufficientBalanceException: 잔액 부족
        """
        amount = round_money(to_decimal(amount))
        if amount <= 0:
            raise InvalidAmountException(amount=amount)

        wallet = await self.get_wallet(user_id, for_update=True)
        if amount > Decimal(wallet.balance):
            raise InsufficientBalanceException(round_money(wallet.balance), amount)

        new_balance = round_money(Decimal(wallet.balance) - amount)
        return await self._apply(
            wallet,
            TransactionType.DEBIT,
            amount,
            new_balance,
            description,
            order_id=order_id,
        )

    async def list_transactions(
        self, user_id: UUID, limit: Optional[int] = None
    ) -> List[WalletTransaction]:
        """거래 내역 조회 (최신순)"""
        wallet = await self.get_wallet(user_id)
        query = (
            select(WalletTransaction)
            .where(WalletTransaction.wallet_id == wallet.id)
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id)
        )
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def ledger_balance(self, user_id: UUID) -> Decimal:
        """거래 내역 합계로 계산한 잔액 (입금 +, 출금 -)"""
        wallet = await self.get_wallet(user_id)
        result = await self.db.execute(
            select(WalletTransaction.type, func.coalesce(func.sum(WalletTransaction.amount), 0))
            .where(WalletTransaction.wallet_id == wallet.id)
            .group_by(WalletTransaction.type)
        )
        totals = {tx_type: to_decimal(total) for tx_type, total in result.all()}
        return round_money(
            totals.get(TransactionType.CREDIT.value, ZERO)
            - totals.get(TransactionType.DEBIT.value, ZERO)
        )

    def _check_topup_amount(self, balance: Decimal, amount: Decimal) -> None:
        """충전 금액 범위 및 충전 후 잔액 한도 확인"""
        if amount < self.settings.WALLET_TOPUP_MIN or amount > self.settings.WALLET_TOPUP_MAX:
            raise InvalidAmountException(
                f"충전 금액은 ₹{self.settings.WALLET_TOPUP_MIN} 이상 "
                f"₹{self.settings.WALLET_TOPUP_MAX} 이하여야 합니다.",
                amount=amount,
            )
        if Decimal(balance) + amount > self.settings.WALLET_MAX_BALANCE:
            raise BalanceCapExceededException(
                round_money(self.settings.WALLET_MAX_BALANCE), round_money(balance)
            )

    async def add_funds(
        self, user_id: UUID, amount, description: Optional[str] = None
    ) -> WalletTransaction:
        """
        게이트웨이를 거치지 않는 직접 충전 (개발/테스트 환경 전용)

        Raises:
            ForbiddenException: 직접 충전이 비활성화된 환경
        """
        if not self.settings.direct_topup_allowed:
            raise ForbiddenException("직접 충전은 이 환경에서 사용할 수 없습니다.")

        amount = round_money(to_decimal(amount))
        try:
            wallet = await self.get_wallet(user_id)
            self._check_topup_amount(wallet.balance, amount)
            transaction = await self.credit(
                user_id, amount, description or "지갑 충전"
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return transaction

    async def create_topup_order(
        self, user_id: UUID, amount, gateway: RazorpayGateway
    ) -> dict:
        """
        게이트웨이 충전 주문 생성

        Returns:
            {"order_id", "amount", "currency", "key_id"}
        """
        amount = round_money(to_decimal(amount))
        wallet = await self.get_wallet(user_id)
        self._check_topup_amount(wallet.balance, amount)
        # 지연 생성된 지갑 반영
        await self.db.commit()

        gateway_order = await gateway.create_order(
            amount_paise=to_paise(amount),
            currency=self.settings.CURRENCY,
            receipt=f"wallet_{str(user_id)[:8]}_{to_paise(amount)}",
            notes={"user_id": str(user_id), "purpose": "wallet_topup"},
        )
        logger.info(
            f"지갑 충전 주문 생성: user_id={user_id}, order_id={gateway_order.get('id')}"
        )
        return {
            "order_id": gateway_order["id"],
            "amount": amount,
            "currency": gateway_order.get("currency", self.settings.CURRENCY),
            "key_id": gateway.key_id,
        }

    async def verify_topup(
        self,
        user_id: UUID,
        order_id: str,
        payment_id: str,
        signature: str,
        gateway: RazorpayGateway,
    ) -> WalletTransaction:
        """
        게이트웨이 결제 검증 후 지갑 입금

        1. 서명 검증 (실패 시 400, 절대 통과시키지 않음)
        2. 결제 조회: captured 상태, 주문 ID 일치
        3. 게이트웨이 주문 조회: 금액 일치, 주문 소유자 확인
        4. 동일 결제 ID 중복 입금 차단 (409)
        """
        if not gateway.verify_signature(order_id, payment_id, signature):
            logger.warning(f"지갑 충전 서명 불일치: user_id={user_id}, order_id={order_id}")
            raise PaymentSignatureException()

        payment = await gateway.fetch_payment(payment_id)
        if payment.get("status") != "captured":
            raise PaymentVerificationException(
                "결제가 완료되지 않았습니다.", reason="payment_not_captured"
            )
        if payment.get("order_id") != order_id:
            raise PaymentVerificationException(
                "결제 정보가 주문과 일치하지 않습니다.", reason="order_mismatch"
            )

        gateway_order = await gateway.fetch_order(order_id)
        if int(payment.get("amount", -1)) != int(gateway_order.get("amount", -2)):
            raise PaymentVerificationException(
                "결제 금액이 주문 금액과 일치하지 않습니다.", reason="amount_mismatch"
            )
        notes = gateway_order.get("notes") or {}
        if notes.get("user_id") not in (None, str(user_id)):
            raise PaymentVerificationException(
                "다른 사용자의 결제 주문입니다.", reason="owner_mismatch"
            )

        amount = from_paise(int(payment["amount"]))

        try:
            duplicate = await self.db.execute(
                select(WalletTransaction.id).where(
                    WalletTransaction.payment_id == payment_id
                )
            )
            if duplicate.first() is not None:
                raise ConflictException(
                    "이미 처리된 결제입니다.", details={"payment_id": payment_id}
                )

            wallet = await self.get_wallet(user_id)
            self._check_topup_amount(wallet.balance, amount)
            transaction = await self.credit(
                user_id,
                amount,
                f"지갑 충전 (Razorpay 결제 {payment_id})",
                payment_id=payment_id,
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return transaction
