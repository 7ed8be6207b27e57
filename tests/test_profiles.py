import asyncio

import pytest

from receiptpro.schemas.profile import BusinessProfileRequest
from receiptpro.services.exceptions import DocumentValidationError, NotFoundError
from receiptpro.services.profiles import ProfileService


def _request(**overrides) -> BusinessProfileRequest:
    values = dict(name="Chillbreeze Orchard", email="hello@chillbreeze.example", city="Singapore")
    values.update(overrides)
    return BusinessProfileRequest(**values)


def test_saved_profile_becomes_current(store) -> None:
    service = ProfileService(store)

    profile = asyncio.run(service.save(_request()))

    assert profile.id
    assert asyncio.run(service.get_current()).id == profile.id
    assert [item.id for item in asyncio.run(service.list())] == [profile.id]


def test_updating_a_profile_keeps_created_at(store) -> None:
    service = ProfileService(store)
    original = asyncio.run(service.save(_request()))

    updated = asyncio.run(service.save(_request(id=original.id, name="Chillbreeze Orchard Pte Ltd")))

    assert updated.id == original.id
    assert updated.created_at == original.created_at
    assert updated.name == "Chillbreeze Orchard Pte Ltd"
    assert len(asyncio.run(service.list())) == 1


def test_profile_requires_name_and_email(store) -> None:
    service = ProfileService(store)

    with pytest.raises(DocumentValidationError) as excinfo:
        asyncio.run(service.save(_request(name=" ", email="")))

    assert excinfo.value.errors == ["Business name is required", "Business email is required"]
    assert asyncio.run(service.list()) == []


def test_deleting_current_profile_clears_the_pointer(store) -> None:
    service = ProfileService(store)
    first = asyncio.run(service.save(_request(name="First")))
    second = asyncio.run(service.save(_request(name="Second")))

    asyncio.run(service.delete(second.id))

    assert asyncio.run(service.get_current()) is None
    assert asyncio.run(service.default_profile()).id == first.id


def test_set_current_and_missing_profile(store) -> None:
    service = ProfileService(store)
    first = asyncio.run(service.save(_request(name="First")))
    asyncio.run(service.save(_request(name="Second")))

    asyncio.run(service.set_current(first.id))
    assert asyncio.run(service.get_current()).id == first.id

    with pytest.raises(NotFoundError):
        asyncio.run(service.set_current("missing"))
    with pytest.raises(NotFoundError):
        asyncio.run(service.delete("missing"))


def test_default_profile_is_none_without_profiles(store) -> None:
    assert asyncio.run(ProfileService(store).default_profile()) is None
