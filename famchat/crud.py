from .models import AsyncSessionLocal, utcnow
from .models.users import User
from .models.contacts import Contact, PENDING, ACCEPTED
from .models.messages import Message
from passlib.context import CryptContext
from email_validator import validate_email, EmailNotValidError
from .auth import issue_token
from .config import BCRYPT_ROUNDS, CONVERSATION_DEFAULT_LIMIT
from .errors import ConstraintViolation, DuplicateIdentity, AlreadyExists, NotFound, SelfReference, NotConnected
from sqlalchemy import select, update, delete, func, or_, and_, case
from sqlalchemy.exc import IntegrityError

pwd_ctx = CryptContext(schemes=['bcrypt'], deprecated='auto', bcrypt__rounds=BCRYPT_ROUNDS)

SENSITIVE_FIELDS = {'password_hash'}


async def _insert_unique(session, obj, unique_keys):
    """Insert obj, letting the store enforce uniqueness.

    unique_keys is a list of (field, select statement) probes. When the insert
    trips a constraint, the probes are run after rollback and the first one that
    finds a row is reported as ConstraintViolation(field). An IntegrityError no
    probe accounts for is re-raised untouched.
    """
    session.add(obj)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        for field, probe in unique_keys:
            res = await session.execute(probe)
            if res.first() is not None:
                raise ConstraintViolation(field)
        raise
    await session.refresh(obj)
    return obj


def _pair(a: int, b: int):
    return (a, b) if a <= b else (b, a)


def _between(a: int, b: int):
    return or_(
        and_(Message.sender_id == a, Message.receiver_id == b),
        and_(Message.sender_id == b, Message.receiver_id == a),
    )


# users
def sanitize(user):
    if user is None:
        return None
    return {c.name: getattr(user, c.name) for c in User.__table__.columns if c.name not in SENSITIVE_FIELDS}


def verify_password(user, password: str) -> bool:
    return pwd_ctx.verify(password, user.password_hash)


async def create_user(payload):
    async with AsyncSessionLocal() as session:
        user = User(
            username=payload.username,
            email=payload.email,
            password_hash=pwd_ctx.hash(payload.password),
            display_name=payload.display_name or payload.username,
        )
        try:
            return await _insert_unique(session, user, [
                ('username', select(User.id).where(User.username == payload.username)),
                ('email', select(User.id).where(User.email == payload.email)),
            ])
        except ConstraintViolation as e:
            raise DuplicateIdentity(e.field) from None


async def get_user_by_id(user_id: int):
    async with AsyncSessionLocal() as session:
        q = await session.execute(select(User).where(User.id == user_id))
        return q.scalars().first()


async def get_user_by_username(username: str):
    async with AsyncSessionLocal() as session:
        q = await session.execute(select(User).where(User.username == username))
        return q.scalars().first()


async def get_user_by_email(email: str):
    async with AsyncSessionLocal() as session:
        q = await session.execute(select(User).where(User.email == email))
        return q.scalars().first()


def normalize_email(email: str) -> str:
    """Normalize the way registration (EmailStr) stored it; unparseable input is returned as is."""
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError:
        return email


async def get_user_by_login(login: str):
    """Look the login up as a username first, then as an email."""
    user = await get_user_by_username(login)
    if user is None and '@' in login:
        user = await get_user_by_email(normalize_email(login))
    return user


async def touch_last_seen(user_id: int):
    async with AsyncSessionLocal() as session:
        await session.execute(update(User).where(User.id == user_id).values(last_seen=utcnow()))
        await session.commit()


async def authenticate_user(login: str, password: str):
    user = await get_user_by_login(login)
    if not user or not verify_password(user, password):
        return None
    await touch_last_seen(user.id)
    user = await get_user_by_id(user.id)
    access = issue_token(user.id, user.username)
    return {'access_token': access, 'token_type': 'bearer', 'user': sanitize(user)}


async def update_public_key(user_id: int, public_key: str):
    async with AsyncSessionLocal() as session:
        q = await session.execute(select(User).where(User.id == user_id))
        user = q.scalars().first()
        if not user:
            return None

        user.public_key = public_key
        await session.commit()
        await session.refresh(user)
        return user


# contacts
def _contact_row(user, created_at):
    return {
        'id': user.id,
        'username': user.username,
        'display_name': user.display_name,
        'avatar_url': user.avatar_url,
        'public_key': user.public_key,
        'last_seen': user.last_seen,
        'created_at': created_at,
    }


async def add_contact(requester_id: int, target_username: str) -> int:
    async with AsyncSessionLocal() as session:
        q = await session.execute(select(User.id).where(User.username == target_username))
        target_id = q.scalar_one_or_none()
        if target_id is None:
            raise NotFound('User not found')
        if target_id == requester_id:
            raise SelfReference('Cannot add yourself as a contact')
        low, high = _pair(requester_id, target_id)
        edge = Contact(user_id=requester_id, contact_id=target_id, pair_low=low, pair_high=high, status=PENDING)
        try:
            await _insert_unique(session, edge, [
                ('pair', select(Contact.id).where(Contact.pair_low == low, Contact.pair_high == high)),
            ])
        except ConstraintViolation:
            raise AlreadyExists('Contact request already exists') from None
        return target_id


async def accept_contact(approver_id: int, requester_id: int):
    """Only the target of a pending request may accept it."""
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            update(Contact)
            .where(Contact.user_id == requester_id, Contact.contact_id == approver_id, Contact.status == PENDING)
            .values(status=ACCEPTED)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        if res.rowcount == 0:
            raise NotFound('Contact request not found')


async def reject_contact(approver_id: int, requester_id: int):
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            delete(Contact)
            .where(Contact.user_id == requester_id, Contact.contact_id == approver_id, Contact.status == PENDING)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        if res.rowcount == 0:
            raise NotFound('Contact request not found')


async def remove_contact(user_id: int, other_id: int):
    low, high = _pair(user_id, other_id)
    async with AsyncSessionLocal() as session:
        await session.execute(
            delete(Contact)
            .where(Contact.pair_low == low, Contact.pair_high == high)
            .execution_options(synchronize_session=False)
        )
        await session.commit()


async def list_contacts(user_id: int):
    other_id = case((Contact.user_id == user_id, Contact.contact_id), else_=Contact.user_id)
    async with AsyncSessionLocal() as session:
        q = (
            select(User, Contact.created_at)
            .join(Contact, User.id == other_id)
            .where(or_(Contact.user_id == user_id, Contact.contact_id == user_id))
            .where(Contact.status == ACCEPTED, User.id != user_id)
            .order_by(User.last_seen.desc(), User.id.asc())
        )
        res = await session.execute(q)
        return [_contact_row(u, created_at) for u, created_at in res.all()]


async def list_pending_requests(user_id: int):
    async with AsyncSessionLocal() as session:
        q = (
            select(User, Contact.created_at)
            .join(Contact, Contact.user_id == User.id)
            .where(Contact.contact_id == user_id, Contact.status == PENDING)
            .order_by(Contact.created_at.desc(), Contact.id.desc())
        )
        res = await session.execute(q)
        return [_contact_row(u, created_at) for u, created_at in res.all()]


async def list_sent_requests(user_id: int):
    async with AsyncSessionLocal() as session:
        q = (
            select(User, Contact.created_at)
            .join(Contact, Contact.contact_id == User.id)
            .where(Contact.user_id == user_id, Contact.status == PENDING)
            .order_by(Contact.created_at.desc(), Contact.id.desc())
        )
        res = await session.execute(q)
        return [_contact_row(u, created_at) for u, created_at in res.all()]


async def is_connected(user_a: int, user_b: int) -> bool:
    low, high = _pair(user_a, user_b)
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            select(Contact.id).where(Contact.pair_low == low, Contact.pair_high == high, Contact.status == ACCEPTED)
        )
        return res.first() is not None


# delivery gate
async def can_exchange(user_a: int, user_b: int) -> bool:
    return await is_connected(user_a, user_b)


async def ensure_can_exchange(user_a: int, user_b: int):
    if not await can_exchange(user_a, user_b):
        raise NotConnected('Not connected with this user')


# messaging
async def create_message(sender_id: int, receiver_id: int, encrypted_content: str, iv: str):
    async with AsyncSessionLocal() as session:
        m = Message(sender_id=sender_id, receiver_id=receiver_id, encrypted_content=encrypted_content, iv=iv)
        session.add(m)
        await session.commit()
        await session.refresh(m)
        return m


async def get_conversation(user_id: int, other_id: int, limit: int = CONVERSATION_DEFAULT_LIMIT):
    """Most recent `limit` messages of the pair, oldest first."""
    async with AsyncSessionLocal() as session:
        q = (
            select(Message)
            .where(_between(user_id, other_id))
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .limit(limit)
        )
        res = await session.execute(q)
        return list(reversed(res.scalars().all()))


async def mark_read(message_id: int, reader_id: int):
    """Stamp read_at once, for the receiver only. Returns the message when it changed."""
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            update(Message)
            .where(Message.id == message_id, Message.receiver_id == reader_id, Message.read_at.is_(None))
            .values(read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        if res.rowcount == 0:
            return None
        q = await session.execute(select(Message).where(Message.id == message_id))
        return q.scalars().first()


async def unread_count(user_id: int) -> int:
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            select(func.count(Message.id)).where(Message.receiver_id == user_id, Message.read_at.is_(None))
        )
        return res.scalar_one()
