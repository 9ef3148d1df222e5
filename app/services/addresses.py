import struct


def hedera_account_to_evm_address(account_id: str) -> str:
    """
    Преобразует идентификатор аккаунта Hedera ("0.0.6761316")
    в 20-байтовый EVM-адрес (long-zero формат: shard 4 байта,
    realm 8 байт, num 8 байт), 40 шестнадцатеричных символов без "0x".

    :raises ValueError: Если идентификатор не в формате shard.realm.num
    """
    parts = account_id.strip().split(".")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid Hedera account id: {account_id!r}")

    shard, realm, num = (int(part) for part in parts)
    try:
        raw = struct.pack(">IQQ", shard, realm, num)
    except struct.error as e:
        raise ValueError(f"Invalid Hedera account id: {account_id!r}") from e
    return raw.hex()
