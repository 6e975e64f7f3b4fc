import click

from vault_deployment.config import parse_address
from vault_deployment.exceptions import ConfigurationError


class ChecksumAddress(click.ParamType):
    name = "checksum_address"

    def convert(self, value, param, ctx):
        try:
            return parse_address(value, param.name if param else self.name)
        except ConfigurationError as e:
            self.fail(str(e), param, ctx)
