import logging
from typing import Callable, Iterable, List, Optional, Tuple

from sqlalchemy import bindparam, delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wifimap.core.config import settings
from wifimap.db.models.network import Network
from wifimap.db.models.observation import Observation
from wifimap.exceptions import StorageError, ValidationError
from wifimap.schemas.network import (
    EncryptionType,
    GeoBounds,
    ImportResult,
    NetworkDetails,
    NetworkFilter,
    NetworkInput,
    NetworkOut,
    NetworkType,
    NetworkUpsert,
    ObservationInput,
    ObservationOut,
    to_epoch_ms,
)
from wifimap.services.geo_solver import Position, best_signal, calculate_weighted_centroid
from wifimap.services.viewport_cache import ViewportCache
from wifimap.utils.oui import get_manufacturer
from wifimap.utils.validation import (
    normalize_bssid,
    sanitize_string,
    validate_bssid,
    validate_coordinates,
    validate_signal_strength,
)
from wifimap.utils.wireless import normalize_encryption, normalize_network_type

logger = logging.getLogger(__name__)

networks_table = Network.__table__
observations_table = Observation.__table__

_ENCRYPTION_VALUES = {e.value for e in EncryptionType}


class NetworkRepository:
    """
    Хранилище сетей и наблюдений.

    Все изменяющие операции сбрасывают кэш вьюпорта. Ошибки SQLAlchemy
    наружу выходят только как StorageError; ValidationError поднимается
    до обращения к базе.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        manufacturer_resolver: Callable[[str], str] = get_manufacturer,
        cache: Optional[ViewportCache] = None,
    ):
        self._session_factory = session_factory
        self._resolve_manufacturer = manufacturer_resolver
        self.cache = cache if cache is not None else ViewportCache(
            ttl=settings.VIEWPORT_CACHE_TTL,
            max_entries=settings.VIEWPORT_CACHE_SIZE,
        )
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        # Фиксированный набор запросов горячего пути, собирается один раз
        self._select_network_by_bssid = select(Network).where(Network.bssid == bindparam("bssid"))
        self._select_network_id = select(networks_table.c.id).where(networks_table.c.bssid == bindparam("bssid"))
        self._select_network_ids = select(networks_table.c.id).order_by(networks_table.c.id)

        self._insert_network = insert(networks_table)
        self._update_network = (
            update(networks_table)
            .where(networks_table.c.id == bindparam("network_id"))
            .values(
                ssid=bindparam("new_ssid"),
                encryption=bindparam("new_encryption"),
                channel=bindparam("new_channel"),
                manufacturer=bindparam("new_manufacturer"),
                last_seen=bindparam("new_last_seen"),
                observation_count=networks_table.c.observation_count + 1,
                type=bindparam("new_type"),
            )
        )
        self._update_position = (
            update(networks_table)
            .where(networks_table.c.id == bindparam("network_id"))
            .values(
                best_lat=bindparam("new_lat"),
                best_lon=bindparam("new_lon"),
                best_signal=bindparam("new_signal"),
            )
        )

        self._insert_observation = insert(observations_table)
        self._select_observation_points = select(
            observations_table.c.latitude,
            observations_table.c.longitude,
            observations_table.c.signal_strength,
        ).where(observations_table.c.network_id == bindparam("network_id"))
        self._select_observations = (
            select(Observation)
            .where(Observation.network_id == bindparam("network_id"))
            .order_by(Observation.id)
        )

        self._delete_observations = delete(observations_table)
        self._delete_networks = delete(networks_table)

    # --- Валидация ---------------------------------------------------------

    def _normalize(self, network: NetworkInput, observation: ObservationInput) -> dict:
        """
        Проверяет и нормализует пару сеть + наблюдение.

        Raises:
            ValidationError: неверный BSSID, координаты или уровень сигнала.
        """
        network_type = normalize_network_type(network.type)
        raw_bssid = (network.bssid or "").strip()

        if network_type == NetworkType.LTE.value:
            # Идентификатор соты хранится как есть, даже если похож на MAC
            if not raw_bssid:
                raise ValidationError("Network identifier must not be empty", field="bssid", value=network.bssid)
            bssid = raw_bssid
        else:
            bssid = normalize_bssid(raw_bssid)

        validate_coordinates(observation.latitude, observation.longitude)

        if not validate_signal_strength(observation.signal_strength):
            raise ValidationError(
                f"Invalid signal strength: {observation.signal_strength}. Must be between -120 and 0 dBm.",
                field="signal_strength",
                value=observation.signal_strength,
            )

        encryption = network.encryption
        if encryption not in _ENCRYPTION_VALUES:
            encryption = normalize_encryption(encryption)

        return {
            "bssid": bssid,
            "ssid": sanitize_string(network.ssid, 32),
            "encryption": encryption,
            "channel": network.channel or None,
            "manufacturer": network.manufacturer or self._resolve_manufacturer(bssid),
            "type": network_type,
            "latitude": observation.latitude,
            "longitude": observation.longitude,
            "signal_strength": int(observation.signal_strength),
            "timestamp": to_epoch_ms(observation.timestamp),
        }

    # --- Запись -------------------------------------------------------------

    async def _upsert(self, session: AsyncSession, values: dict) -> Tuple[int, bool]:
        """
        Returns:
            (id сети, True если сеть создана).
        """
        existing_id = (await session.execute(self._select_network_id, {"bssid": values["bssid"]})).scalar_one_or_none()

        if existing_id is not None:
            await session.execute(
                self._update_network,
                {
                    "network_id": existing_id,
                    "new_ssid": values["ssid"],
                    "new_encryption": values["encryption"],
                    "new_channel": values["channel"],
                    "new_manufacturer": values["manufacturer"],
                    "new_last_seen": values["timestamp"],
                    "new_type": values["type"],
                },
            )
            await self._add_observation(session, existing_id, values)
            await self._recalculate(session, existing_id)
            return existing_id, False

        result = await session.execute(
            self._insert_network,
            {
                "bssid": values["bssid"],
                "ssid": values["ssid"],
                "encryption": values["encryption"],
                "channel": values["channel"],
                "manufacturer": values["manufacturer"],
                "first_seen": values["timestamp"],
                "last_seen": values["timestamp"],
                "observation_count": 1,
                "best_lat": values["latitude"],
                "best_lon": values["longitude"],
                "best_signal": values["signal_strength"],
                "type": values["type"],
            },
        )
        network_id = result.inserted_primary_key[0]
        await self._add_observation(session, network_id, values)
        return network_id, True

    async def _add_observation(self, session: AsyncSession, network_id: int, values: dict) -> None:
        await session.execute(
            self._insert_observation,
            {
                "network_id": network_id,
                "latitude": values["latitude"],
                "longitude": values["longitude"],
                "signal_strength": values["signal_strength"],
                "timestamp": values["timestamp"],
            },
        )

    async def _recalculate(self, session: AsyncSession, network_id: int) -> Optional[Position]:
        points = (await session.execute(self._select_observation_points, {"network_id": network_id})).all()
        if not points:
            return None
        position = calculate_weighted_centroid(points)
        await session.execute(
            self._update_position,
            {
                "network_id": network_id,
                "new_lat": position.latitude,
                "new_lon": position.longitude,
                "new_signal": best_signal(points),
            },
        )
        return position

    async def upsert_network(self, network: NetworkInput, observation: ObservationInput) -> int:
        """
        Создаёт сеть или добавляет к существующей наблюдение и пересчитывает
        её позицию по всем наблюдениям.

        Returns:
            id сети.
        """
        values = self._normalize(network, observation)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    network_id, created = await self._upsert(session, values)
        except SQLAlchemyError as e:
            logger.error(f"Error in upsert_network for {values['bssid']}: {e}")
            raise StorageError(f"Failed to upsert network: {e}", cause=e) from e
        finally:
            self.cache.clear()
        logger.debug(f"{'Created' if created else 'Updated'} network {values['bssid']} (id={network_id})")
        return network_id

    async def batch_insert_networks(self, items: Iterable[NetworkUpsert]) -> ImportResult:
        """
        Пакетная вставка в одной транзакции. Каждая запись выполняется в
        своём SAVEPOINT: ошибка одной записи попадает в errors, остальные
        сохраняются.
        """
        result = ImportResult()
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for item in items:
                        try:
                            values = self._normalize(item.network, item.observation)
                            async with session.begin_nested():
                                _, created = await self._upsert(session, values)
                        except (ValidationError, SQLAlchemyError) as e:
                            result.errors.append(f"Error importing {item.network.bssid}: {e}")
                            continue
                        if created:
                            result.networks_imported += 1
                        else:
                            result.networks_updated += 1
                        result.observations_added += 1
        except SQLAlchemyError as e:
            logger.error(f"Batch insert failed: {e}")
            raise StorageError(f"Failed to insert batch: {e}", cause=e) from e
        finally:
            self.cache.clear()

        logger.info(
            f"Batch: {result.networks_imported} new, {result.networks_updated} updated, "
            f"{len(result.errors)} errors"
        )
        return result

    async def recalculate_position(self, network_id: int) -> Optional[Position]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    position = await self._recalculate(session, network_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to recalculate position: {e}", cause=e) from e
        finally:
            self.cache.clear()
        return position

    async def recalculate_all_positions(self) -> int:
        """
        Пересчитывает позиции всех сетей. Returns: число обновлённых сетей.
        """
        updated = 0
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    network_ids = (await session.execute(self._select_network_ids)).scalars().all()
                    for network_id in network_ids:
                        if await self._recalculate(session, network_id) is not None:
                            updated += 1
        except SQLAlchemyError as e:
            logger.error(f"Position recalculation failed: {e}")
            raise StorageError(f"Failed to recalculate positions: {e}", cause=e) from e
        finally:
            self.cache.clear()
        logger.info(f"Recalculated positions for {updated} networks")
        return updated

    async def clear_all_networks(self) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    # Сначала наблюдения, потом сети
                    await session.execute(self._delete_observations)
                    await session.execute(self._delete_networks)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to clear networks: {e}", cause=e) from e
        finally:
            self.cache.clear()
        logger.info("All networks and observations deleted")

    def clear_cache(self) -> None:
        self.cache.clear()

    # --- Чтение -------------------------------------------------------------

    @staticmethod
    def _build_find_query(network_filter: NetworkFilter):
        stmt = select(Network)
        if network_filter.ssid:
            # instr() чувствителен к регистру, в отличие от LIKE в SQLite
            stmt = stmt.where(func.instr(Network.ssid, network_filter.ssid) > 0)
        if network_filter.bssid:
            stmt = stmt.where(func.instr(Network.bssid, network_filter.bssid) > 0)
        if network_filter.encryption:
            stmt = stmt.where(Network.encryption.in_(network_filter.encryption))
        if network_filter.bounds is not None:
            bounds = network_filter.bounds
            stmt = stmt.where(
                Network.best_lat.between(bounds.south, bounds.north),
                Network.best_lon.between(bounds.west, bounds.east),
            )
        if network_filter.date_range is not None:
            stmt = stmt.where(
                Network.last_seen.between(
                    to_epoch_ms(network_filter.date_range.start),
                    to_epoch_ms(network_filter.date_range.end),
                )
            )
        if network_filter.min_signal is not None:
            stmt = stmt.where(Network.best_signal >= network_filter.min_signal)
        if network_filter.types:
            stmt = stmt.where(Network.type.in_(network_filter.types))
        return stmt.order_by(Network.id)

    async def find_networks(
        self,
        network_filter: Optional[NetworkFilter] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[NetworkOut]:
        network_filter = network_filter or NetworkFilter()
        limit = limit if limit is not None else settings.DEFAULT_QUERY_LIMIT

        cache_key = None
        if network_filter.is_viewport_only():
            cache_key = self.cache.make_key(network_filter.bounds, limit, offset)
            cached = self.cache.get(cache_key)
            if cached is not None:
                return list(cached)

        stmt = self._build_find_query(network_filter).limit(limit).offset(offset)
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
                networks = [NetworkOut.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to query networks: {e}", cause=e) from e

        if cache_key is not None:
            self.cache.put(cache_key, networks)
        return list(networks)

    async def get_networks_in_bounds(
        self,
        bounds: GeoBounds,
        types: Optional[List[str]] = None,
        limit: Optional[int] = None,
    ) -> List[NetworkOut]:
        return await self.find_networks(NetworkFilter(bounds=bounds, types=types or None), limit=limit)

    async def get_network_by_bssid(self, bssid: str) -> Optional[NetworkOut]:
        try:
            async with self._session_factory() as session:
                row = (await session.execute(self._select_network_by_bssid, {"bssid": bssid})).scalars().first()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get network {bssid}: {e}", cause=e) from e
        return NetworkOut.model_validate(row) if row is not None else None

    async def get_observations(self, network_id: int) -> List[ObservationOut]:
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(self._select_observations, {"network_id": network_id})).scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get observations: {e}", cause=e) from e
        return [ObservationOut.model_validate(row) for row in rows]

    async def get_network_details(self, bssid: str) -> Optional[NetworkDetails]:
        """
        Сеть вместе со всеми наблюдениями. Сначала ищется точное совпадение
        (идентификаторы LTE), затем MAC-адрес в любом написании (aa-bb-..., AABB...).
        """
        network = await self.get_network_by_bssid(bssid)
        if network is None and validate_bssid(bssid):
            network = await self.get_network_by_bssid(normalize_bssid(bssid))
        if network is None:
            return None
        observations = await self.get_observations(network.id)
        return NetworkDetails(**network.model_dump(), observations=observations)
