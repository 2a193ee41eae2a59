"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import typer

from homelight.core.errors import HomelightError, InvalidValueError, PayloadDecodeError
from homelight.core.model import GetDeviceInfo, HSVColor, LightInfo, SetBrightness, SetLEDColor
from homelight.core.service import LightService, parse_power_state
from homelight.protocol.decoder import FrameDecoder
from homelight.protocol.encoder import encode_command
from homelight.protocol.payload import decode_message

app = typer.Typer(help="Read and control battery-powered smart lights over BLE")

T = TypeVar("T")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="Path to lights.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    ctx.obj = {"config": config}


def _build_service(ctx: typer.Context) -> LightService:
    config_path = (ctx.obj or {}).get("config")
    service = LightService(config_path=config_path)
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _run_on_light(service: LightService, light_id: int, action: Callable[[], Awaitable[T]]) -> T:
    async def _session() -> T:
        await service.start([light_id])
        try:
            return await action()
        finally:
            await service.stop()

    return asyncio.run(_session())


def _format_info(info: LightInfo) -> str:
    state = "on" if info.is_on else "off"
    return (
        f"{info.name or '<unnamed>'}: {state} "
        f"hue={info.color.h:.1f} saturation={info.color.s:.3f} value={info.color.v:.3f}"
    )


def _fail(exc: Exception) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


@app.command("lights")
def list_lights(ctx: typer.Context) -> None:
    """List configured lights."""
    try:
        service = _build_service(ctx)
        lights = service.list_lights()
        if not lights:
            typer.echo("No lights configured")
            raise typer.Exit(code=1)

        for light in lights:
            typer.echo(f"{light.id}: {light.name} ({light.address})")
    except HomelightError as exc:
        raise _fail(exc) from None


@app.command("state")
def show_state(
    ctx: typer.Context,
    light_id: int,
    force: bool = typer.Option(False, "--force", help="Query the device even if cached state is fresh"),
) -> None:
    """Print the current state of a light."""
    try:
        service = _build_service(ctx)
        info = _run_on_light(service, light_id, lambda: service.get_state(light_id, force=force))
        typer.echo(_format_info(info))
    except HomelightError as exc:
        raise _fail(exc) from None


@app.command("power")
def power(
    ctx: typer.Context,
    light_id: int,
    value: str | None = typer.Argument(None, help="ON or OFF"),
) -> None:
    """Show or set the power state of a light."""
    try:
        service = _build_service(ctx)
        if value is None:
            is_on = _run_on_light(service, light_id, lambda: service.get_power(light_id))
            typer.echo("on" if is_on else "off")
            return
        on = parse_power_state(value)
        _run_on_light(service, light_id, lambda: service.set_power(light_id, on))
        typer.echo("Power state set")
    except HomelightError as exc:
        raise _fail(exc) from None


def _component_command(
    ctx: typer.Context,
    light_id: int,
    value: float | None,
    *,
    label: str,
    getter: str,
    setter: str,
) -> None:
    try:
        service = _build_service(ctx)
        if value is None:
            current = _run_on_light(service, light_id, lambda: getattr(service, getter)(light_id))
            typer.echo(str(current))
            return
        _run_on_light(service, light_id, lambda: getattr(service, setter)(light_id, value))
        typer.echo(f"{label} set")
    except HomelightError as exc:
        raise _fail(exc) from None


@app.command("brightness")
def brightness(
    ctx: typer.Context,
    light_id: int,
    value: float | None = typer.Argument(None, help="Brightness percent, 0-100"),
) -> None:
    """Show or set brightness in percent."""
    _component_command(ctx, light_id, value, label="Brightness", getter="get_brightness", setter="set_brightness")


@app.command("hue")
def hue(
    ctx: typer.Context,
    light_id: int,
    value: float | None = typer.Argument(None, help="Hue in degrees, 0-360"),
) -> None:
    """Show or set hue in degrees."""
    _component_command(ctx, light_id, value, label="Hue", getter="get_hue", setter="set_hue")


@app.command("saturation")
def saturation(
    ctx: typer.Context,
    light_id: int,
    value: float | None = typer.Argument(None, help="Saturation percent, 0-100"),
) -> None:
    """Show or set saturation in percent."""
    _component_command(ctx, light_id, value, label="Saturation", getter="get_saturation", setter="set_saturation")


def _parse_hex(data: str) -> bytes:
    try:
        return bytes.fromhex(data.replace(":", " "))
    except ValueError as exc:
        raise InvalidValueError(f"Invalid hex input: {exc}") from exc


@app.command("decode")
def decode(data: str = typer.Argument(..., help="Captured notification bytes as hex")) -> None:
    """Decode a captured notification byte stream offline."""
    try:
        messages = FrameDecoder().consume(_parse_hex(data))
    except HomelightError as exc:
        raise _fail(exc) from None

    if not messages:
        typer.echo("No complete frames found")
        return

    for message in messages:
        typer.echo(repr(message))
        try:
            info = decode_message(message)
        except PayloadDecodeError as exc:
            typer.echo(f"  undecodable: {exc}")
            continue
        if info is not None:
            typer.echo(f"  {_format_info(info)}")


@app.command("encode")
def encode(
    kind: str = typer.Argument(..., help="info, brightness or color"),
    values: list[float] | None = typer.Argument(None, help="brightness: 0-1; color: H S V"),
) -> None:
    """Print the raw frame for a command."""
    args = values or []
    try:
        command: Any
        if kind == "info" and not args:
            command = GetDeviceInfo()
        elif kind == "brightness" and len(args) == 1:
            command = SetBrightness(args[0])
        elif kind == "color" and len(args) == 3:
            command = SetLEDColor(HSVColor(h=args[0], s=args[1], v=args[2]))
        else:
            raise InvalidValueError(
                "Expected 'info', 'brightness VALUE' or 'color H S V'"
            )
        typer.echo(encode_command(command).hex(" "))
    except HomelightError as exc:
        raise _fail(exc) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
