import os
import random
from pathlib import Path
from typing import Generator, Mapping

from better_proxy import Proxy
from pydantic import ValidationError
from ruamel.yaml import YAML

from sonic_cycler.exceptions import ConfigurationError
from sonic_cycler.models import Account, Config
from sonic_cycler.utils.utils import get_address


yaml = YAML(typ='safe')


def split_env_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


class ConfigLoader:
    REQUIRED_PARAMS: frozenset[str] = frozenset({
        'rpc',
        'explorer',
        'chain_id',
        'contracts',
    })

    def __init__(
        self,
        base_path: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.base_path = Path(base_path or Path(__file__).parent.parent.parent)
        self.config_path = self.base_path / 'config'
        self.settings_path = self.config_path / 'settings.yaml'
        self.environ = os.environ if environ is None else environ
        self.warnings: list[str] = []

    def _load_yaml(self) -> dict:
        if not self.settings_path.exists():
            raise ConfigurationError(f'Settings file not found: {self.settings_path}')

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as file:
                config = yaml.load(file)
        except Exception as error:
            raise ConfigurationError(f'Error reading {self.settings_path}: {error}') from error

        if not isinstance(config, dict):
            raise ConfigurationError('Configuration must be a dictionary')

        missing_fields = self.REQUIRED_PARAMS - set(config.keys())
        if missing_fields:
            raise ConfigurationError(
                f'Missing required fields: {", ".join(sorted(missing_fields))}'
            )

        return config

    def _get_keys(self) -> list[str]:
        keys = split_env_list(self.environ.get('PRIVATE_KEYS'))
        if not keys:
            keys = split_env_list(self.environ.get('PRIVATE_KEY'))
        return keys

    def _get_accounts(self) -> Generator[Account, None, None]:
        proxies = split_env_list(self.environ.get('PROXIES'))

        for index, keypair in enumerate(self._get_keys()):
            try:
                get_address(keypair)
            except Exception:
                self.warnings.append(f'Invalid private key #{index + 1} skipped')
                continue

            proxy = None
            if index < len(proxies):
                try:
                    proxy = Proxy.from_str(proxies[index])
                except ValueError as error:
                    raise ConfigurationError(f'Invalid proxy #{index + 1}: {error}') from error

            yield Account(keypair=keypair, proxy=proxy)

    def load(self) -> Config:
        params = self._load_yaml()
        accounts = list(self._get_accounts())

        if not accounts:
            raise ConfigurationError(
                'No valid private keys found. Set PRIVATE_KEYS (comma separated) in .env'
            )

        try:
            config = Config(accounts=accounts, **params)
        except ValidationError as error:
            raise ConfigurationError(f'Invalid settings: {error}') from error
        except TypeError as error:
            raise ConfigurationError(f'Invalid settings: {error}') from error

        if config.shuffle_wallets:
            random.shuffle(config.accounts)

        return config
