"""Quickstart: compile a container from type hints and use it.

Declare the top-level service as an entry point, let zenwire generate the
container module, then import the generated class and resolve the service.
"""

from __future__ import annotations

import importlib
import sys
import tempfile
from abc import ABC, abstractmethod

from zenwire import CompilerConfig, ContainerBuilder, ContainerConfig


class UserRepository(ABC):
    @abstractmethod
    def find(self, user_id: int) -> str: ...


class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self.users = {1: "alice"}

    def find(self, user_id: int) -> str:
        return self.users[user_id]


class UserService:
    def __init__(self, repository: UserRepository, greeting: str = "hello") -> None:
        self.repository = repository
        self.greeting = greeting

    def greet(self, user_id: int) -> str:
        return f"{self.greeting} {self.repository.find(user_id)}"


def main() -> None:
    config = CompilerConfig(
        container_fqcn="quickstart_container.Container",
        container_configs=[
            ContainerConfig(
                entry_points=[UserService],
                definition_hints={UserRepository: InMemoryUserRepository},
            ),
        ],
    )

    with tempfile.TemporaryDirectory() as output_directory:
        written = ContainerBuilder(config).build(output_directory)
        print(f"files={[path.name for path in written]}")  # => files=['quickstart_container.py']

        sys.path.insert(0, output_directory)
        try:
            container = importlib.import_module("quickstart_container").Container()
        finally:
            sys.path.remove(output_directory)

    service = container.get(UserService)
    print(service.greet(1))  # => hello alice
    print(f"same_instance={container.get(UserService) is service}")  # => same_instance=True
    print(f"has_repository={container.has(UserRepository)}")  # => has_repository=False


if __name__ == "__main__":
    main()
