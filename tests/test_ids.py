from bson import ObjectId

from storage.ids import id_variants, is_object_id, normalize_id, same_id, to_int_id

OID = "507f1f77bcf86cd799439011"


def test_is_object_id():
    assert is_object_id(OID)
    assert is_object_id(ObjectId(OID))
    assert not is_object_id("12")
    assert not is_object_id("not-an-id")
    assert not is_object_id(12)


def test_to_int_id():
    assert to_int_id(7) == 7
    assert to_int_id(" 42 ") == 42
    assert to_int_id("4a") is None
    assert to_int_id(True) is None
    assert to_int_id(None) is None


def test_normalize_id():
    assert normalize_id("15") == 15
    assert normalize_id(OID) == OID
    assert normalize_id(ObjectId(OID)) == OID
    assert normalize_id("abc") is None
    assert normalize_id(None) is None


def test_id_variants_cover_every_stored_form():
    assert id_variants(3) == ["3", 3]
    assert id_variants(OID) == [OID, ObjectId(OID)]
    assert id_variants(None) == []


def test_same_id_compares_across_types():
    assert same_id(5, "5")
    assert same_id(ObjectId(OID), OID)
    assert not same_id(5, 6)
    assert not same_id(None, None)
