# storage/ids.py
"""
ID 正規化工具

系統同時存在兩種 ID：
1. 記憶體儲存 (MemStorage) 與舊資料匯入時使用的「數字 ID」(1, 2, 3...)
2. MongoDB 文件本身的 ObjectId (24 個十六進位字元)

路由收到的 ID 一律是字串，這裡負責把它轉成後端看得懂的型態。
"""
import re

from bson import ObjectId

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def is_object_id(value) -> bool:
    """判斷是否為 MongoDB ObjectId (物件本身或 24 碼十六進位字串)"""
    if isinstance(value, ObjectId):
        return True
    return isinstance(value, str) and bool(OBJECT_ID_PATTERN.match(value))


def to_int_id(value) -> int | None:
    """
    嘗試轉成數字 ID。
    - int 直接回傳 (bool 不算 ID)
    - 純數字字串 (例如 "12") 轉成 int
    - 其他情況回傳 None
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return int(stripped)
    return None


def normalize_id(value) -> int | str | None:
    """
    把路由參數轉成儲存層使用的 ID：
    - ObjectId 格式 -> 保持字串 (注意：24 碼純數字也會被當成 ObjectId)
    - 數字 -> int
    - 無法辨識 -> None (呼叫端應回傳 404)
    """
    if value is None:
        return None
    if is_object_id(value):
        return str(value)
    return to_int_id(value)


def id_variants(value) -> list:
    """
    一個外鍵在資料庫裡可能被存成的所有型態。
    MongoDB 查詢時用 {"$in": id_variants(x)}，避免字串/數字/ObjectId 對不上。
    """
    if value is None:
        return []
    variants: list = [str(value)]
    numeric = to_int_id(value)
    if numeric is not None:
        variants.append(numeric)
    if is_object_id(value):
        variants.append(ObjectId(str(value)))
    return variants


def same_id(a, b) -> bool:
    """比較兩個 ID 是否相同 (統一轉字串，跨資料庫相容)"""
    if a is None or b is None:
        return False
    return str(a) == str(b)
