#!/usr/bin/env python3
"""
书店 API 冒烟测试脚本
对运行中的服务做端到端检查；提供 --user-id 和 --book-id 时额外走一遍
"加入购物车 -> 库存减少 -> 移除 -> 库存恢复" 的流程。

用法: python test_app.py [--base-url http://localhost:8000] [--user-id U --book-id B]
"""

import argparse
import sys
import time
import uuid
from typing import Optional

import requests

BASE_URL = "http://localhost:8000"
API_PREFIX = "/api/v1"


class SmokeTester:
    """冒烟测试器"""

    def __init__(self, base_url: str = BASE_URL, user_id: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        if user_id:
            self.session.headers["X-User-Id"] = user_id
        self.results = []

    def record(self, name: str, success: bool, message: str = "") -> bool:
        status = "✅ PASS" if success else "❌ FAIL"
        print(f"{status} {name}" + (f" - {message}" if message else ""))
        self.results.append((name, success, message))
        return success

    def wait_for_service(self, max_wait: int = 30) -> bool:
        print(f"⏳ 等待服务启动 (最多等待 {max_wait} 秒)...")
        deadline = time.time() + max_wait
        while time.time() < deadline:
            try:
                if self.session.get(f"{self.base_url}/health", timeout=1).status_code == 200:
                    return True
            except requests.RequestException:
                pass
            print(".", end="", flush=True)
            time.sleep(1)
        print()
        return False

    def expect(self, name: str, method: str, path: str, statuses, headers=None, **kwargs) -> Optional[requests.Response]:
        """发送请求并检查状态码"""
        try:
            response = self.session.request(method, f"{self.base_url}{path}", headers=headers, timeout=5, **kwargs)
        except requests.RequestException as e:
            self.record(name, False, f"异常: {e}")
            return None
        self.record(name, response.status_code in statuses, f"状态码: {response.status_code}")
        return response

    def available_stock(self, book_id: str) -> Optional[int]:
        response = self.session.get(f"{self.base_url}{API_PREFIX}/books/{book_id}/stock", timeout=5)
        if response.status_code != 200:
            return None
        return response.json()["available_stock"]

    def run_basic_checks(self):
        self.expect("健康检查", "GET", "/health", {200})
        self.expect("根路径访问", "GET", "/", {200})
        self.expect("API 文档访问", "GET", "/docs", {200})
        self.expect("OpenAPI Schema", "GET", "/openapi.json", {200})
        self.expect("图书目录", "GET", f"{API_PREFIX}/books", {200})
        self.expect("未知图书库存", "GET", f"{API_PREFIX}/books/{uuid.uuid4()}/stock", {404})
        self.expect("未登录访问购物车", "GET", f"{API_PREFIX}/cart", {401}, headers={"X-User-Id": ""})

        response = self.session.get(f"{self.base_url}/health", timeout=5)
        cors = response.headers.get("access-control-allow-origin")
        self.record("CORS 支持", cors is not None, f"Origin: {cors}")

    def run_cart_flow(self, book_id: str):
        """加入后库存减少，移除后库存恢复"""
        before = self.available_stock(book_id)
        if before is None or before < 1:
            self.record("购物车流程", False, f"图书库存不可用: {before}")
            return

        response = self.expect(
            "加入购物车", "POST", f"{API_PREFIX}/cart/items", {200},
            json={"book_id": book_id, "quantity": 1},
            headers={"Idempotency-Key": uuid.uuid4().hex},
        )
        if response is None or response.status_code != 200:
            return

        after_add = self.available_stock(book_id)
        self.record("加入后库存减少", after_add == before - 1, f"{before} -> {after_add}")

        items = response.json()["data"]["items"]
        item = next((i for i in items if i["book_id"] == book_id), None)
        if item is None:
            self.record("购物车包含图书", False)
            return

        self.expect("移除购物车条目", "DELETE", f"{API_PREFIX}/cart/items/{item['id']}", {200})
        after_remove = self.available_stock(book_id)
        self.record("移除后库存恢复", after_remove == before, f"{after_add} -> {after_remove}")

    def summary(self) -> bool:
        passed = sum(1 for _, success, _ in self.results if success)
        total = len(self.results)
        print("\n" + "=" * 60)
        print(f"📊 测试结果汇总: {passed}/{total} 通过")
        return passed == total


def main():
    parser = argparse.ArgumentParser(description="书店 API 冒烟测试")
    parser.add_argument("--base-url", default=BASE_URL)
    parser.add_argument("--user-id", help="已存在的用户ID，用于购物车流程")
    parser.add_argument("--book-id", help="库存大于 0 的图书ID，用于购物车流程")
    args = parser.parse_args()

    tester = SmokeTester(args.base_url, args.user_id)
    if not tester.wait_for_service():
        print("❌ 服务未正常启动，测试终止")
        return 1

    tester.run_basic_checks()
    if args.user_id and args.book_id:
        tester.run_cart_flow(args.book_id)

    return 0 if tester.summary() else 1


if __name__ == "__main__":
    sys.exit(main())
