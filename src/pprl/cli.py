"""
PPRL CLI
Runs secure Q-learning on FrozenLake against an encrypted Q-table.
"""

import logging
from pathlib import Path

import click

from .codec import IntegerCodec
from .config import get_settings
from .logging import configure_from_settings
from .protocol import KeyMaterial, SecureQtableProtocol
from .rl import Environment, SecureAgent, Trainer, get_lake, write_success_csv
from .transport import ChunkedTransport, DirectoryChunkStore

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """Privacy-preserving reinforcement learning over an encrypted Q-table."""
    pass


@cli.command()
@click.option("--size", "-s", required=True, type=click.Choice(["3x3", "4x4", "5x5", "6x6"]), help="FrozenLake map size")
@click.option("--trials", default=4, show_default=True, help="Independent training trials")
@click.option("--episodes", default=200, show_default=True, help="Episodes per trial")
@click.option("--backend", type=click.Choice(["tenseal", "toy"]), default=None, help="BFV backend (default from PPRL_HE_BACKEND)")
@click.option("--map-bound", default=None, type=int, help="N: fixed-point integers live in [-N, N) (default from PPRL_MAP_BOUND)")
@click.option("--coeff", default=None, type=float, help="Fixed-point coefficient (default from PPRL_Q_INT_COEFF)")
@click.option("--seed", default=0, show_default=True, help="Seed for exploration")
@click.option("--output-dir", default=".", type=click.Path(file_okay=False), help="Where CSV results are written")
@click.option("--show-table", is_flag=True, help="Print the decrypted Q-table (waives confidentiality)")
def train(size, trials, episodes, backend, map_bound, coeff, seed, output_dir, show_table):
    """Train an agent whose Q-table is stored encrypted."""
    import numpy as np

    settings = get_settings()
    configure_from_settings(settings)

    keys = KeyMaterial.generate(settings, backend=backend)
    codec = IntegerCodec(
        bound=map_bound if map_bound is not None else settings.MAP_BOUND,
        coeff=coeff or settings.Q_INT_COEFF,
        plain_modulus=keys.scheme.params.plain_modulus,
    )
    store = DirectoryChunkStore(settings.CHUNK_STORE_DIR) if settings.CHUNK_STORE_DIR else None
    protocol = SecureQtableProtocol(
        keys,
        codec=codec,
        transport=ChunkedTransport(max_workers=settings.TRANSPORT_WORKERS),
        store=store,
    )

    env = Environment(get_lake(size))
    agent = SecureAgent(env, protocol, rng=np.random.default_rng(seed))
    trainer = Trainer(env, protocol, agent=agent)

    result = trainer.run(trials=trials, episodes=episodes, measure_mse=show_table)

    out = Path(output_dir)
    tag = f"{env.height}x{env.width}"
    write_success_csv(out / f"PPRL_success_rate_{tag}.csv", result.success_rates[-1])
    path = write_success_csv(
        out / f"PPRL_average_success_rate_{tag}.csv",
        result.average_success_rates,
        header="Average Success Rate",
    )
    click.echo(f"Average success rate written to {path}")

    if show_table:
        click.echo(agent.format_qtable())
        decrypted = protocol.decrypt_table(trainer.table, confidentiality_waiver=True)
        click.echo("Decrypted Qtable:")
        for index, row in enumerate(decrypted):
            y, x = divmod(index, env.width)
            click.echo(f"State [Y: {y}, X: {x}]: {np.round(row, 3).tolist()}")
        click.echo(f"MSE(shadow, decrypted) = {result.final_mse:.6f}")


@cli.command()
def config():
    """Show effective configuration and any issues."""
    settings = get_settings()
    for key, value in settings.model_dump().items():
        click.echo(f"{key}={value}")
    for issue in settings.validate_config():
        click.echo(issue, err=True)


def main():
    cli()


if __name__ == "__main__":
    main()
