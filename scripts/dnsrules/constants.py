"""规则编译器使用的静态常量。"""

from __future__ import annotations

# geosite: 简写引用的隐式列表文件。
DEFAULT_GEOSITE_FILE = "geosite.dat"

# 未配置 fakeIpRange 时使用的保留网段。
DEFAULT_FAKE_IP_RANGE = "224.0.0.0/8"

DEFAULT_DNS_PORT = 53

# 与 v2ray 一致：资源目录优先取该环境变量。
ASSET_LOCATION_ENV = "V2RAY_LOCATION_ASSET"

# 压缩表示的前缀映射。顺序即匹配优先级；各前缀互不为前缀，顺序只影响可读性。
# geosite: 在压缩时还需补齐默认文件名并大写标签，见 compress.compress_pattern。
PATTERN_PREFIX_CODES = (
    ("domain:", "d"),
    ("full:", "f"),
    ("keyword:", "k"),
    ("regexp:", "r"),
    ("geosite:", "e"),
    ("ext:", "e"),
    ("geoip:", "i"),
)

# 未带前缀的条目按完整匹配处理。
DEFAULT_PATTERN_CODE = "f"

# 外部列表条目中 kind 的写法（domain-list-community 语法）。
LIST_ENTRY_KINDS = ("domain", "full", "keyword", "regexp")
DEFAULT_LIST_ENTRY_KIND = "domain"
