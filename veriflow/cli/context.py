"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

CLI context for the Veriflow SDK.

Provides shared context object and decorators for CLI commands.
"""

import click

from veriflow.sdk.client import VeriflowClient


# Context object shared across commands
class CLIContext:
    """Context object for CLI commands.

    ``client_factory`` builds the SDK client from the loaded configuration;
    it is replaceable so commands can run against an in-memory transport.
    """

    def __init__(self, client_factory=None):
        self.config = None
        self.config_path = None
        self.client_factory = client_factory or VeriflowClient

    def make_client(self) -> VeriflowClient:
        return self.client_factory(config=self.config)


pass_context = click.make_pass_decorator(CLIContext, ensure=True)
