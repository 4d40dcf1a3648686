import pytest
from famchat import crud
from famchat.errors import AlreadyExists, NotFound, SelfReference


@pytest.mark.asyncio
async def test_add_returns_target_id(users):
    assert await crud.add_contact(users['alice'].id, 'bob') == users['bob'].id


@pytest.mark.asyncio
async def test_pair_is_unique_in_either_direction(users):
    a, b = users['alice'], users['bob']
    await crud.add_contact(a.id, 'bob')
    with pytest.raises(AlreadyExists):
        await crud.add_contact(a.id, 'bob')
    with pytest.raises(AlreadyExists):
        await crud.add_contact(b.id, 'alice')

    await crud.accept_contact(b.id, a.id)
    with pytest.raises(AlreadyExists):
        await crud.add_contact(b.id, 'alice')


@pytest.mark.asyncio
async def test_self_and_unknown_targets(users):
    with pytest.raises(SelfReference):
        await crud.add_contact(users['alice'].id, 'alice')
    with pytest.raises(NotFound):
        await crud.add_contact(users['alice'].id, 'nobody')


@pytest.mark.asyncio
async def test_only_target_can_accept(users):
    a, b = users['alice'], users['bob']
    await crud.add_contact(a.id, 'bob')
    assert not await crud.is_connected(a.id, b.id)
    assert not await crud.is_connected(b.id, a.id)

    with pytest.raises(NotFound):
        await crud.accept_contact(a.id, b.id)
    with pytest.raises(NotFound):
        await crud.accept_contact(users['carol'].id, a.id)

    await crud.accept_contact(b.id, a.id)
    assert await crud.is_connected(a.id, b.id)
    assert await crud.is_connected(b.id, a.id)
    assert await crud.can_exchange(b.id, a.id)

    # already accepted, nothing pending left
    with pytest.raises(NotFound):
        await crud.accept_contact(b.id, a.id)


@pytest.mark.asyncio
async def test_reject_deletes_pending_only(users):
    a, b = users['alice'], users['bob']
    with pytest.raises(NotFound):
        await crud.reject_contact(b.id, a.id)

    await crud.add_contact(a.id, 'bob')
    with pytest.raises(NotFound):
        await crud.reject_contact(a.id, b.id)
    await crud.reject_contact(b.id, a.id)
    assert await crud.list_pending_requests(b.id) == []

    # pair is free again, either side may ask
    await crud.add_contact(b.id, 'alice')
    await crud.accept_contact(a.id, b.id)
    with pytest.raises(NotFound):
        await crud.reject_contact(a.id, b.id)
    assert await crud.is_connected(a.id, b.id)


@pytest.mark.asyncio
async def test_remove_is_idempotent(users):
    a, b, c = users['alice'], users['bob'], users['carol']
    await crud.add_contact(a.id, 'bob')
    await crud.accept_contact(b.id, a.id)
    await crud.add_contact(c.id, 'alice')

    await crud.remove_contact(b.id, a.id)
    assert not await crud.is_connected(a.id, b.id)
    await crud.remove_contact(b.id, a.id)
    assert not await crud.is_connected(a.id, b.id)

    # pending edges go too
    await crud.remove_contact(a.id, c.id)
    assert await crud.list_pending_requests(a.id) == []


@pytest.mark.asyncio
async def test_list_contacts_ordered_by_last_seen(users):
    a, b, c = users['alice'], users['bob'], users['carol']
    await crud.add_contact(a.id, 'bob')
    await crud.accept_contact(b.id, a.id)
    await crud.add_contact(c.id, 'alice')
    await crud.accept_contact(a.id, c.id)

    await crud.touch_last_seen(b.id)
    await crud.touch_last_seen(c.id)
    listed = await crud.list_contacts(a.id)
    assert [row['id'] for row in listed] == [c.id, b.id]
    assert all('password_hash' not in row for row in listed)

    await crud.touch_last_seen(b.id)
    assert [row['id'] for row in await crud.list_contacts(a.id)] == [b.id, c.id]
    assert [row['id'] for row in await crud.list_contacts(b.id)] == [a.id]


@pytest.mark.asyncio
async def test_pending_lists_newest_first(users):
    a, b, c = users['alice'], users['bob'], users['carol']
    await crud.add_contact(b.id, 'alice')
    await crud.add_contact(c.id, 'alice')

    incoming = await crud.list_pending_requests(a.id)
    assert [row['username'] for row in incoming] == ['carol', 'bob']
    assert await crud.list_contacts(a.id) == []

    assert [row['username'] for row in await crud.list_sent_requests(b.id)] == ['alice']
    assert await crud.list_sent_requests(a.id) == []
    assert await crud.list_pending_requests(b.id) == []
