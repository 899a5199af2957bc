import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studymint.core.config import Settings, settings
from studymint.core.errors import InvalidInput, UserNotFound
from studymint.db.transaction import run_in_transaction
from studymint.models.ledger_entry import LedgerKind
from studymint.models.user import User, normalize_identity
from studymint.services.ledger.service import LedgerService

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: LedgerService,
        cfg: Settings = settings,
    ):
        self.session_factory = session_factory
        self.ledger = ledger
        self.cfg = cfg

    async def get_or_create_user(self, identity: str) -> tuple[User, bool]:
        """
        Регистрация подтверждённого identity. Повторный вызов возвращает того же
        пользователя; бонус за регистрацию начисляется ровно один раз.
        Returns: (user, created)
        """
        identity = normalize_identity(identity)
        if not identity:
            raise InvalidInput("identity is required")

        async def _create(db: AsyncSession) -> tuple[User, bool]:
            user = await db.get(User, identity)
            if user:
                return user, False
            user = User(identity=identity, balance=0)
            db.add(user)
            await db.flush()
            if self.cfg.signup_bonus_coins > 0:
                await self.ledger.credit(db, identity, self.cfg.signup_bonus_coins, LedgerKind.SIGNUP_BONUS)
                await db.refresh(user)
            return user, True

        try:
            user, created = await run_in_transaction(
                self.session_factory, _create, operation="register_user", cfg=self.cfg
            )
        except IntegrityError:
            # Параллельная регистрация того же identity успела раньше
            user = await self.get_user(identity)
            created = False
        if created:
            logger.info("user_registered", extra={"identity": identity, "balance": user.balance})
        return user, created

    async def get_user(self, identity: str) -> User:
        identity = normalize_identity(identity)
        async with self.session_factory() as db:
            user = await db.get(User, identity)
        if user is None:
            raise UserNotFound(detail={"identity": identity})
        return user
