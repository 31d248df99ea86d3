#!/usr/bin/env python3
"""将 v2ray 风格的 DNS 配置编译为运行时使用的规则结构。"""

from __future__ import annotations

from dnsrules.app import main

if __name__ == "__main__":
    raise SystemExit(main())
