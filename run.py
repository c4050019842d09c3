#!/usr/bin/env python3
"""Скрипт для запуска SCIM Core"""

import sys
import subprocess
import argparse


def run_server(host: str, port: int):
    """Запуск сервера разработки"""
    print(f"🚀 Запуск SCIM Core на {host}:{port}...")
    try:
        subprocess.run([
            sys.executable, "-m", "uvicorn",
            "scim_core.main:app",
            "--host", host,
            "--port", str(port),
            "--reload"
        ], check=True)
    except KeyboardInterrupt:
        print("\n✋ Сервер остановлен")
    except subprocess.CalledProcessError as e:
        print(f"❌ Ошибка запуска сервера: {e}")
        sys.exit(1)


def run_tests(extra_args):
    """Запуск тестов"""
    print("🧪 Запуск тестов...")
    result = subprocess.run([
        sys.executable, "-m", "pytest",
        "tests/",
        "-v",
        "--tb=short",
        *extra_args
    ], check=False)
    if result.returncode == 0:
        print("✅ Все тесты прошли успешно!")
    else:
        print("❌ Некоторые тесты не прошли")
        sys.exit(result.returncode)


def install_deps():
    """Установка пакета с тестовыми зависимостями"""
    print("📦 Установка зависимостей...")
    try:
        subprocess.run([
            sys.executable, "-m", "pip", "install",
            "-e", ".[test]"
        ], check=True)
        print("✅ Зависимости установлены успешно!")
    except subprocess.CalledProcessError as e:
        print(f"❌ Ошибка установки зависимостей: {e}")
        sys.exit(1)


def main():
    """Главная функция"""
    parser = argparse.ArgumentParser(description="SCIM Core управление")
    parser.add_argument(
        "command",
        choices=["server", "test", "install"],
        help="Команда для выполнения"
    )
    parser.add_argument("--host", default="0.0.0.0", help="Адрес сервера")
    parser.add_argument("--port", type=int, default=4000, help="Порт сервера")

    args, extra = parser.parse_known_args()

    if args.command == "server":
        run_server(args.host, args.port)
    elif args.command == "test":
        run_tests(extra)
    elif args.command == "install":
        install_deps()


if __name__ == "__main__":
    main()
