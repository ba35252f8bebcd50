#!/usr/bin/env python3
"""
Autodiscover CLI

Example caller for the discovery library: binds a TCP listener, announces
it, and connects to every peer that does the same.

Usage:
    autodiscover start                                  # Broadcast on 255.255.255.255:2020
    autodiscover start --method multicast --target [ff0e::1]:1337
    autodiscover encode 10.0.0.5:4000                   # Show the wire message
    autodiscover decode 0a0000050fa0                    # Decode a wire message
"""

import asyncio
import ipaddress
import logging
import socket
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.logging import RichHandler
from rich.markup import escape

from autodiscover.log import TRACE
from autodiscover.discovery import (
    AsyncioHandler,
    ConnectionResult,
    DiscoveryService,
    MalformedPacket,
    SocketAddress,
    decode_address,
    encode_address,
    get_local_ip,
)
from config import Config, load_config

console = Console()


def setup_logging(verbose: bool = False, level: str = 'INFO'):
    """Configure logging with rich output."""
    if verbose:
        numeric_level = logging.DEBUG
    elif level.upper() == 'TRACE':
        numeric_level = TRACE
    else:
        numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


def advertised_address(config: Config, sockname: tuple) -> SocketAddress:
    """
    Work out the address peers should dial.

    A listener bound to the wildcard address can't be dialed as-is, so the
    primary interface address is announced instead.
    """
    bound = SocketAddress.from_sockaddr(sockname)
    if config.advertise_host:
        return SocketAddress(ipaddress.ip_address(config.advertise_host), bound.port)
    if bound.ip.is_unspecified:
        return SocketAddress(ipaddress.ip_address(get_local_ip(bound.family)), bound.port)
    return bound


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='JSON config file')
@click.pass_context
def cli(ctx, verbose, config_path):
    """Autodiscover - find and connect to peers on the LAN."""
    try:
        config = load_config(Path(config_path) if config_path else None)
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}")
    setup_logging(verbose, config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.option('--host', help='Listener bind address')
@click.option('--port', type=int, help='Listener port (0 = any free port)')
@click.option('--advertise-host', help='Address to announce instead of the bound one')
@click.option('--method', type=click.Choice(['broadcast', 'multicast']), help='Announcement method')
@click.option('--target', help='Broadcast address or multicast group (host:port)')
@click.pass_context
def start(ctx, host, port, advertise_host, method, target):
    """Listen, announce, and connect to discovered peers."""
    config = ctx.obj['config']

    if host is not None:
        config.host = host
    if port is not None:
        config.port = port
    if advertise_host is not None:
        config.advertise_host = advertise_host
    if method is not None:
        config.method = method
    if target is not None:
        config.target = target

    try:
        strategy = config.strategy()
    except ValueError as e:
        console.print(f"[red]Invalid discovery target: {escape(str(e))}[/red]")
        ctx.exit(1)

    async def handle_inbound(reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        peer = writer.get_extra_info('peername')
        console.print(f"[green]Got a connection from {escape(str(SocketAddress.from_sockaddr(peer)))}[/green]")
        writer.close()
        await writer.wait_closed()

    async def handle_outbound(result: ConnectionResult):
        if not result.ok:
            console.print(f"[red]Could not connect to {escape(str(result.address))}: {escape(str(result.error))}[/red]")
            return

        reader, writer = await asyncio.open_connection(sock=result.stream)
        console.print(f"[cyan]Connected to peer {escape(str(result.address))}[/cyan]")
        writer.close()
        await writer.wait_closed()

    async def run():
        # make sure to bind before announcing
        server = await asyncio.start_server(handle_inbound, config.host, config.port)
        advertised = advertised_address(config, server.sockets[0].getsockname())

        service = DiscoveryService(
            advertised,
            strategy,
            AsyncioHandler(handle_outbound),
            poll_interval=config.poll_interval,
        )

        try:
            service.start()

            console.print(Panel.fit(
                f"[bold green]Autodiscover Node Started[/bold green]\n\n"
                f"Listening on: [yellow]{config.host}:{advertised.port}[/yellow]\n"
                f"Announcing: [cyan]{escape(str(advertised))}[/cyan]\n"
                f"Method: [blue]{escape(str(strategy))}[/blue]",
                title="Node Info"
            ))
            console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")

            async with server:
                while service.is_running:
                    await asyncio.sleep(1)

            if service.error:
                console.print(f"[red]Discovery stopped: {escape(str(service.error))}[/red]")

        except KeyboardInterrupt:
            console.print("\n[yellow]Shutting down...[/yellow]")
        finally:
            service.stop(timeout=config.poll_interval * 4)
            console.print("[green]Node stopped[/green]")

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


@cli.command()
@click.argument('address')
def encode(address):
    """Print the announcement for ADDRESS (host:port) as hex."""
    try:
        addr = SocketAddress.parse(address)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='ADDRESS')

    console.print(encode_address(addr).hex(), markup=False)


@cli.command()
@click.argument('message')
@click.pass_context
def decode(ctx, message):
    """Decode a hex announcement MESSAGE."""
    try:
        data = bytes.fromhex(message)
    except ValueError:
        raise click.BadParameter("not a hex string", param_hint='MESSAGE')

    try:
        addr = decode_address(data)
    except MalformedPacket as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        ctx.exit(1)

    family = "IPv6" if addr.family == socket.AF_INET6 else "IPv4"
    console.print(f"{addr} ({family})", markup=False)


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
