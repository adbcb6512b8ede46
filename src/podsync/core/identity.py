"""URL 内容寻址 ID."""

_INT32_MIN = -(2**31)


def _string_hash(text: str) -> int:
    """按 UTF-16 码元计算 31 进制字符串哈希，返回有符号 32 位整数."""
    # surrogatepass: 单独的代理码元也按码元参与计算
    data = text.encode("utf-16-be", "surrogatepass")
    h = 0
    for i in range(0, len(data), 2):
        h = (31 * h + ((data[i] << 8) | data[i + 1])) & 0xFFFFFFFF
    return h - 2**32 if h >= 2**31 else h


def generate_id(url: str) -> int:
    """
    根据 URL 生成确定性 ID.

    32 位哈希平移到无符号区间，结果满足 0 <= id < 2**32，
    跨进程稳定（不依赖 Python 的随机化 hash）。
    """
    return _string_hash(url) - _INT32_MIN
