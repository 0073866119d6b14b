from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import delete, func, select

from wifimap.db.models.network import Network
from wifimap.db.models.observation import Observation
from wifimap.exceptions import ValidationError
from wifimap.schemas.network import (
    DateRange,
    GeoBounds,
    NetworkFilter,
    NetworkInput,
    NetworkUpsert,
    ObservationInput,
)
from wifimap.services.network_repository import NetworkRepository

T0 = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def net(bssid="F0:EE:7A:12:34:56", ssid="HomeNet", encryption="WPA2", **kwargs):
    return NetworkInput(bssid=bssid, ssid=ssid, encryption=encryption, **kwargs)


def obs(lat=55.75, lon=37.61, signal=-60, ts=T0):
    return ObservationInput(latitude=lat, longitude=lon, signal_strength=signal, timestamp=ts)


def mac(i):
    return f"AA:BB:CC:{(i >> 16) & 0xFF:02X}:{(i >> 8) & 0xFF:02X}:{i & 0xFF:02X}"


async def count(session_factory, model):
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def test_upsert_twice_merges_into_one_network(repository, session_factory):
    first_id = await repository.upsert_network(net(), obs(lat=10.0, lon=10.0, signal=-50))
    second_id = await repository.upsert_network(net(), obs(lat=20.0, lon=20.0, signal=-100, ts=T0 + timedelta(hours=1)))

    assert first_id == second_id
    assert await count(session_factory, Network) == 1
    assert await count(session_factory, Observation) == 2

    network = await repository.get_network_by_bssid("F0:EE:7A:12:34:56")
    assert network.observation_count == 2
    assert network.best_signal == -50
    # (10 * 2500 + 20 * 10000) / 12500
    assert network.best_lat == pytest.approx(18.0)
    assert network.best_lon == pytest.approx(18.0)
    assert network.first_seen == T0
    assert network.last_seen == T0 + timedelta(hours=1)


async def test_new_network_takes_observation_position(repository):
    await repository.upsert_network(net(), obs(lat=1.5, lon=2.5, signal=-42))
    network = await repository.get_network_by_bssid("F0:EE:7A:12:34:56")

    assert (network.best_lat, network.best_lon, network.best_signal) == (1.5, 2.5, -42)
    assert network.observation_count == 1
    assert network.type == "WIFI"


async def test_bssid_normalized_and_manufacturer_resolved(repository):
    await repository.upsert_network(net(bssid="f0-ee-7a-12-34-56"), obs())
    network = await repository.get_network_by_bssid("F0:EE:7A:12:34:56")

    assert network is not None
    assert network.manufacturer == "Apple, Inc."


async def test_custom_manufacturer_resolver(session_factory):
    repository = NetworkRepository(session_factory, manufacturer_resolver=lambda bssid: "Acme")
    await repository.upsert_network(net(), obs())
    assert (await repository.get_network_by_bssid("F0:EE:7A:12:34:56")).manufacturer == "Acme"


async def test_explicit_manufacturer_kept(repository):
    await repository.upsert_network(net(manufacturer="Vendor X"), obs())
    assert (await repository.get_network_by_bssid("F0:EE:7A:12:34:56")).manufacturer == "Vendor X"


@pytest.mark.parametrize(
    "network,observation,field",
    [
        (net(bssid="not-a-mac"), obs(), "bssid"),
        (net(), obs(lat=91.0), "latitude"),
        (net(), obs(lon=-181.0), "longitude"),
        (net(), obs(signal=-150), "signal_strength"),
        (net(bssid="   ", type="LTE"), obs(), "bssid"),
    ],
)
async def test_validation_fails_before_storage(repository, session_factory, network, observation, field):
    with pytest.raises(ValidationError) as exc_info:
        await repository.upsert_network(network, observation)
    assert exc_info.value.field == field
    assert await count(session_factory, Network) == 0


async def test_lte_identifier_stored_verbatim(repository):
    await repository.upsert_network(net(bssid="310260_12345_678", type="LTE"), obs())
    network = await repository.get_network_by_bssid("310260_12345_678")
    assert network.type == "LTE"


async def test_lte_identifier_shaped_like_mac_is_not_rewritten(repository):
    # 12 цифр проходят проверку MAC, но у соты это обычный идентификатор
    await repository.upsert_network(net(bssid="310260123456", type="LTE"), obs())
    network = await repository.get_network_by_bssid("310260123456")
    assert network is not None
    assert network.type == "LTE"
    assert await repository.get_network_by_bssid("31:02:60:12:34:56") is None

    details = await repository.get_network_details("310260123456")
    assert details.bssid == "310260123456"
    assert len(details.observations) == 1


async def test_ssid_truncated_and_encryption_normalized(repository):
    await repository.upsert_network(net(ssid="x" * 40, encryption="[WPA-PSK-TKIP][ESS]"), obs())
    network = await repository.get_network_by_bssid("F0:EE:7A:12:34:56")
    assert network.ssid == "x" * 32
    assert network.encryption == "WPA"


async def test_batch_with_one_invalid_item(repository, session_factory):
    items = [NetworkUpsert(network=net(bssid=mac(i), ssid=f"net{i}"), observation=obs()) for i in range(999)]
    items.insert(500, NetworkUpsert(network=net(bssid="ZZ:ZZ:ZZ:ZZ:ZZ:ZZ"), observation=obs()))

    result = await repository.batch_insert_networks(items)

    assert result.networks_imported + result.networks_updated == 999
    assert result.observations_added == 999
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Error importing ZZ:ZZ:ZZ:ZZ:ZZ:ZZ:")
    assert await count(session_factory, Network) == 999


async def test_batch_counts_updates_and_imports(repository):
    await repository.upsert_network(net(bssid=mac(1)), obs())
    items = [
        NetworkUpsert(network=net(bssid=mac(1)), observation=obs(signal=-40)),
        NetworkUpsert(network=net(bssid=mac(2)), observation=obs()),
        NetworkUpsert(network=net(bssid=mac(2)), observation=obs(lat=56.0)),
    ]

    result = await repository.batch_insert_networks(items)

    assert result.networks_imported == 1
    assert result.networks_updated == 2
    assert result.observations_added == 3
    assert (await repository.get_network_by_bssid(mac(1))).best_signal == -40
    assert (await repository.get_network_by_bssid(mac(2))).observation_count == 2


async def seed(repository):
    await repository.batch_insert_networks(
        [
            NetworkUpsert(network=net(bssid=mac(1), ssid="HomeNet", encryption="WPA2"), observation=obs(55.75, 37.61, -50, T0)),
            NetworkUpsert(network=net(bssid=mac(2), ssid="homenet-guest", encryption="Open"), observation=obs(55.80, 37.70, -80, T0)),
            NetworkUpsert(network=net(bssid=mac(3), ssid="Cafe", encryption="WEP", type="BLE"), observation=obs(48.85, 2.35, -70, T0 - timedelta(days=30))),
            NetworkUpsert(network=net(bssid=mac(4), ssid="Tower", encryption="Unknown", type="LTE"), observation=obs(40.0, -74.0, -90, T0)),
        ]
    )


async def test_find_networks_filters(repository):
    await seed(repository)

    async def bssids(**kwargs):
        return [n.bssid for n in await repository.find_networks(NetworkFilter(**kwargs))]

    assert await bssids() == [mac(1), mac(2), mac(3), mac(4)]
    # Подстрока SSID с учётом регистра
    assert await bssids(ssid="Home") == [mac(1)]
    assert await bssids(ssid="home") == [mac(2)]
    assert await bssids(bssid=mac(3)[-5:]) == [mac(3)]
    assert await bssids(encryption=["WPA2", "WEP"]) == [mac(1), mac(3)]
    assert await bssids(types=["BLE", "LTE"]) == [mac(3), mac(4)]
    assert await bssids(min_signal=-75) == [mac(1), mac(3)]
    assert await bssids(bounds=GeoBounds(north=56.0, south=55.0, east=38.0, west=37.0)) == [mac(1), mac(2)]
    assert await bssids(date_range=DateRange(start=T0 - timedelta(days=31), end=T0 - timedelta(days=29))) == [mac(3)]
    assert await bssids(ssid="Home", encryption=["Open"]) == []


async def test_find_networks_pagination(repository):
    await seed(repository)
    page = await repository.find_networks(NetworkFilter(), limit=2, offset=1)
    assert [n.bssid for n in page] == [mac(2), mac(3)]


async def test_viewport_queries_cached_and_invalidated_on_write(repository):
    await seed(repository)
    bounds = GeoBounds(north=56.0, south=55.0, east=38.0, west=37.0)

    first = await repository.find_networks(NetworkFilter(bounds=bounds))
    assert len(first) == 2
    assert len(repository.cache) == 1

    # Запросы с другими условиями в кэш не попадают
    await repository.find_networks(NetworkFilter(bounds=bounds, ssid="Home"))
    assert len(repository.cache) == 1

    await repository.upsert_network(net(bssid=mac(9)), obs(55.5, 37.5))
    assert len(repository.cache) == 0

    second = await repository.find_networks(NetworkFilter(bounds=bounds))
    assert len(second) == 3


async def test_get_networks_in_bounds(repository):
    await seed(repository)
    world = GeoBounds(north=90, south=-90, east=180, west=-180)
    assert len(await repository.get_networks_in_bounds(world)) == 4
    assert [n.bssid for n in await repository.get_networks_in_bounds(world, types=["LTE"])] == [mac(4)]


async def test_get_network_by_bssid_absent(repository):
    assert await repository.get_network_by_bssid("00:00:00:00:00:00") is None


async def test_observations_and_details(repository):
    network_id = await repository.upsert_network(net(), obs(signal=-50))
    await repository.upsert_network(net(), obs(signal=-70))

    observations = await repository.get_observations(network_id)
    assert [o.signal_strength for o in observations] == [-50, -70]
    assert observations[0].timestamp == T0

    details = await repository.get_network_details("f0ee7a123456")
    assert details.id == network_id
    assert len(details.observations) == 2
    assert await repository.get_network_details("00:00:00:00:00:01") is None


async def test_recalculate_all_positions(repository):
    await seed(repository)
    assert await repository.recalculate_all_positions() == 4
    assert await repository.recalculate_position(10_000) is None


async def test_clear_all_networks(repository, session_factory):
    await seed(repository)
    await repository.find_networks(NetworkFilter(bounds=GeoBounds(north=90, south=-90, east=180, west=-180)))

    await repository.clear_all_networks()

    assert await count(session_factory, Network) == 0
    assert await count(session_factory, Observation) == 0
    assert len(repository.cache) == 0


async def test_deleting_network_cascades_to_observations(repository, session_factory):
    await seed(repository)
    async with session_factory() as session:
        async with session.begin():
            await session.execute(delete(Network.__table__))
    assert await count(session_factory, Observation) == 0
