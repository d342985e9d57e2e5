"""
Постоянное хранилище: четыре JSON-коллекции (users, deals, balances, logs).

Каждая коллекция — отдельный файл, который целиком перезаписывается
при каждом изменении. Запись идёт через временный файл и os.replace,
поэтому на диске всегда лежит либо старая, либо новая версия.
"""

import asyncio
import copy
import json
import os
from pathlib import Path
from typing import Any, Callable

from services.errors import PersistenceError
from utils.logger import get_logger

logger = get_logger(__name__)

COLLECTIONS = ("users", "deals", "balances", "logs")

# Маркер удаления ключа внутри транзакции
_DELETED = object()


class Transaction:
    """
    Транзакция над несколькими коллекциями.

    Держит блокировки всех коллекций до выхода из контекста.
    Изменения копятся в памяти и записываются на диск только
    при выходе без исключения.
    """

    def __init__(self, store: "JsonStore", names: tuple[str, ...]) -> None:
        self._store = store
        self._names = names
        self._changes: dict[str, dict[str, Any]] = {name: {} for name in names}
        self._acquired: list[asyncio.Lock] = []

    async def __aenter__(self) -> "Transaction":
        await self._store._ensure_open()
        try:
            for name in self._names:
                lock = self._store._locks[name]
                await lock.acquire()
                self._acquired.append(lock)
        except BaseException:
            self._release()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                await self._store._commit(self._changes)
        finally:
            self._release()

    def _release(self) -> None:
        while self._acquired:
            self._acquired.pop().release()

    def _check(self, name: str) -> None:
        if name not in self._changes:
            raise ValueError(f"Коллекция {name} не входит в транзакцию")

    def get(self, name: str, key: Any) -> Any:
        self._check(name)
        key = str(key)
        staged = self._changes[name]
        if key in staged:
            value = staged[key]
            return None if value is _DELETED else copy.deepcopy(value)
        return copy.deepcopy(self._store._data[name].get(key))

    def set(self, name: str, key: Any, value: Any) -> None:
        self._check(name)
        self._changes[name][str(key)] = copy.deepcopy(value)

    def delete(self, name: str, key: Any) -> None:
        self._check(name)
        self._changes[name][str(key)] = _DELETED


class JsonStore:
    """Хранилище коллекций в JSON-файлах с блокировкой на коллекцию."""

    def __init__(self, data_dir: str | Path) -> None:
        self._dir = Path(data_dir)
        self._data: dict[str, dict[str, Any]] = {}
        self._locks = {name: asyncio.Lock() for name in COLLECTIONS}
        self._open_lock = asyncio.Lock()
        self._loaded = False

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _path(self, name: str) -> Path:
        return self._dir / f"{name}.json"

    # ==================== ЗАГРУЗКА ====================

    async def open(self) -> None:
        """Загружает коллекции с диска, создавая отсутствующие файлы."""
        async with self._open_lock:
            if self._loaded:
                return
            self._data = await asyncio.to_thread(self._load_all)
            self._loaded = True
            logger.info(f"Хранилище открыто: {self._dir}")

    async def _ensure_open(self) -> None:
        if not self._loaded:
            await self.open()

    def _load_all(self) -> dict[str, dict[str, Any]]:
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Не удалось создать каталог {self._dir}: {e}") from e

        data = {}
        for name in COLLECTIONS:
            path = self._path(name)
            if not path.exists():
                logger.info(f"Создаю пустую коллекцию {name}")
                try:
                    self._write_collection(name, {})
                except OSError as e:
                    raise PersistenceError(f"Не удалось создать {path}: {e}") from e
                data[name] = {}
                continue

            try:
                with open(path, "r", encoding="utf-8") as f:
                    content = json.load(f)
            except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
                raise PersistenceError(f"Не удалось прочитать {path}: {e}") from e

            if not isinstance(content, dict):
                raise PersistenceError(f"Файл {path} не содержит JSON-объект")
            data[name] = content
        return data

    # ==================== ЧТЕНИЕ ====================

    def _require(self, name: str) -> None:
        if name not in COLLECTIONS:
            raise ValueError(f"Неизвестная коллекция: {name}")

    async def get(self, name: str, key: Any) -> Any:
        """Текущее значение или None, если ключа нет."""
        self._require(name)
        await self._ensure_open()
        return copy.deepcopy(self._data[name].get(str(key)))

    async def all(self, name: str) -> dict[str, Any]:
        """Копия всей коллекции."""
        self._require(name)
        await self._ensure_open()
        return copy.deepcopy(self._data[name])

    # ==================== ЗАПИСЬ ====================

    def transaction(self, *names: str) -> Transaction:
        """Транзакция над перечисленными коллекциями (блокировки берутся по алфавиту)."""
        for name in names:
            self._require(name)
        return Transaction(self, tuple(sorted(set(names))))

    async def mutate(self, name: str, key: Any, fn: Callable[[Any], Any]) -> Any:
        """
        Атомарно применяет fn к значению ключа и сохраняет коллекцию.

        Args:
            name: Имя коллекции
            key: Ключ записи
            fn: Получает текущее значение (или None), возвращает новое.
                None означает удаление ключа. Исключение из fn
                отменяет изменение.

        Returns:
            Новое значение
        """
        async with self.transaction(name) as tx:
            value = fn(tx.get(name, key))
            if value is None:
                tx.delete(name, key)
            else:
                tx.set(name, key, value)
        return copy.deepcopy(value)

    async def _commit(self, changes: dict[str, dict[str, Any]]) -> None:
        touched = {name: staged for name, staged in changes.items() if staged}
        if not touched:
            return

        old = {name: self._data[name] for name in touched}
        new = {}
        for name, staged in touched.items():
            collection = dict(self._data[name])
            for key, value in staged.items():
                if value is _DELETED:
                    collection.pop(key, None)
                else:
                    collection[key] = value
            new[name] = collection

        await asyncio.to_thread(self._write_all, new, old)

        # В память попадает только то, что уже лежит на диске
        self._data.update(new)

    def _write_all(self, new: dict[str, dict], old: dict[str, dict]) -> None:
        written = []
        for name, collection in new.items():
            try:
                self._write_collection(name, collection)
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Ошибка записи коллекции {name}: {e}")
                for done in written:
                    try:
                        self._write_collection(done, old[done])
                    except (OSError, TypeError, ValueError) as rollback_error:
                        logger.error(f"Не удалось откатить коллекцию {done}: {rollback_error}")
                raise PersistenceError(f"Не удалось сохранить коллекцию {name}: {e}") from e
            written.append(name)

    def _write_collection(self, name: str, collection: dict[str, Any]) -> None:
        path = self._path(name)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(collection, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        finally:
            tmp_path.unlink(missing_ok=True)
