"""
Request Repositories
FIFO queues of applications waiting for an administrator decision
"""

from abc import abstractmethod
from collections import deque
from decimal import Decimal, InvalidOperation
from typing import Callable, Deque, Generic, List, Optional, TypeVar
import logging

from core.repositories.base_repository import BaseRepository
from core.models.entities import (
    AccountRequest, AdminAccountRequest, Appointment, RequestStatus
)
from db.database import FileManager
from utils.exceptions import RequestNotFoundException
from utils.helpers import NumberUtils

logger = logging.getLogger(__name__)

ACCOUNT_REQUESTS_FILE = 'account_requests.txt'
ADMIN_REQUESTS_FILE = 'admin_requests.txt'
PENDING_APPOINTMENTS_FILE = 'appointments_pending.txt'
APPROVED_APPOINTMENTS_FILE = 'appointments_approved.txt'

T = TypeVar('T')

class QueueRepository(BaseRepository, Generic[T]):
    """Insertion-ordered queue mirrored to a pipe-delimited file.

    Only the head can be decided; callers peek, act, then ``dequeue``.
    """

    fields = 0

    def __init__(self, storage: FileManager, filename: str):
        super().__init__(storage, filename)
        self._items: Deque[T] = deque()

    @abstractmethod
    def _format(self, item: T) -> str:
        """Render one record"""

    @abstractmethod
    def _parse(self, parts: List[str]) -> T:
        """Build one record from its split fields"""

    def _serialize(self) -> List[str]:
        return [self._format(item) for item in self._items]

    def _deserialize(self, lines: List[str]) -> None:
        self._items = deque()
        for line in lines:
            parts = self._split(line, '|', self.fields)
            if not parts:
                continue
            try:
                self._items.append(self._parse(parts))
            except (ValueError, InvalidOperation):
                logger.warning(f"Skipping unreadable record in {self.filename}: {line!r}")

    def enqueue(self, item: T) -> T:
        with self._lock:
            self._items.append(item)
            self.save()
        return item

    def peek(self) -> Optional[T]:
        with self._lock:
            return self._items[0] if self._items else None

    def head(self) -> T:
        """Oldest undecided item, or RequestNotFoundException when empty"""
        item = self.peek()
        if item is None:
            raise RequestNotFoundException(f"No pending entries in {self.filename}")
        return item

    def dequeue(self) -> T:
        with self._lock:
            item = self.head()
            self._items.popleft()
            self.save()
        return item

    def requeue_head(self) -> T:
        """Move the head to the back of the queue"""
        with self._lock:
            item = self.head()
            self._items.rotate(-1)
            self.save()
        return item

    def get_all(self) -> List[T]:
        with self._lock:
            return list(self._items)

    def find(self, predicate: Callable[[T], bool]) -> Optional[T]:
        with self._lock:
            for item in self._items:
                if predicate(item):
                    return item
        return None

    def count(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def clear(self):
        with self._lock:
            self._items = deque()

class AccountRequestRepository(QueueRepository[AccountRequest]):
    """Account-opening applications (account_requests.txt)"""

    fields = 6

    def __init__(self, storage: FileManager):
        super().__init__(storage, ACCOUNT_REQUESTS_FILE)

    def _format(self, item: AccountRequest) -> str:
        return "|".join([
            item.owner_username, item.full_name, item.national_id,
            NumberUtils.format_amount(item.initial_deposit), item.phone, item.address
        ])

    def _parse(self, parts: List[str]) -> AccountRequest:
        return AccountRequest(
            owner_username=parts[0],
            full_name=parts[1],
            national_id=parts[2],
            initial_deposit=Decimal(parts[3]),
            phone=parts[4],
            address=parts[5]
        )

    def national_id_pending(self, national_id: str) -> bool:
        return self.find(lambda r: r.national_id == national_id) is not None

    def username_pending(self, username: str) -> bool:
        wanted = username.lower()
        return self.find(lambda r: r.owner_username.lower() == wanted) is not None

    def rename_owner(self, old_username: str, new_username: str) -> int:
        """Carry pending applications over to a changed username"""
        with self._lock:
            moved = 0
            for request in self._items:
                if request.owner_username == old_username:
                    request.owner_username = new_username
                    moved += 1
            if moved:
                self.save()
            return moved

class AdminRequestRepository(QueueRepository[AdminAccountRequest]):
    """Applications for an administrator login (admin_requests.txt)"""

    fields = 6

    def __init__(self, storage: FileManager):
        super().__init__(storage, ADMIN_REQUESTS_FILE)

    def _format(self, item: AdminAccountRequest) -> str:
        return "|".join([
            item.username, item.full_name, item.national_id,
            item.phone, item.address, item.password_hash
        ])

    def _parse(self, parts: List[str]) -> AdminAccountRequest:
        return AdminAccountRequest(
            username=parts[0],
            full_name=parts[1],
            national_id=parts[2],
            phone=parts[3],
            address=parts[4],
            password_hash=parts[5]
        )

    def username_pending(self, username: str) -> bool:
        wanted = username.lower()
        return self.find(lambda r: r.username.lower() == wanted) is not None

    def national_id_pending(self, national_id: str) -> bool:
        return self.find(lambda r: r.national_id == national_id) is not None

class _AppointmentFormat:
    fields = 6

    def _format(self, item: Appointment) -> str:
        return "|".join([
            item.owner_username, item.service, item.date,
            item.time, item.reason, item.status.value
        ])

    def _parse(self, parts: List[str]) -> Appointment:
        return Appointment(
            owner_username=parts[0],
            service=parts[1],
            date=parts[2],
            time=parts[3],
            reason=parts[4],
            status=RequestStatus(parts[5].strip())
        )

class AppointmentRepository(_AppointmentFormat, QueueRepository[Appointment]):
    """Appointments waiting for a decision (appointments_pending.txt)"""

    def __init__(self, storage: FileManager):
        super().__init__(storage, PENDING_APPOINTMENTS_FILE)

    def for_user(self, username: str) -> List[Appointment]:
        return [a for a in self.get_all() if a.owner_username == username]

class ApprovedAppointmentRepository(_AppointmentFormat, QueueRepository[Appointment]):
    """Approved appointments (appointments_approved.txt); only ever appended to"""

    def __init__(self, storage: FileManager):
        super().__init__(storage, APPROVED_APPOINTMENTS_FILE)

    def for_user(self, username: str) -> List[Appointment]:
        return [a for a in self.get_all() if a.owner_username == username]
