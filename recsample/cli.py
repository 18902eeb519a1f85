"""Command-line entry point: sample a delimited file and write the result."""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor

import hydra
from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

from recsample.config import SampleConfig
from recsample.io import CsvSink, read_csv_records, read_header_file
from recsample.orchestrator import SampleResult, sample_records

logger = logging.getLogger(__name__)


def sample_config_from_cfg(cfg: DictConfig) -> SampleConfig:
    """Build a :class:`SampleConfig` from the Hydra ``sample`` and ``execution`` groups."""
    seed = cfg.execution.seed
    weight_field = cfg.sample.weight_field
    return SampleConfig(
        size=int(cfg.sample.size),
        probability=float(cfg.sample.probability),
        group_fields=[str(f) for f in cfg.sample.group_fields],
        weight_field=None if weight_field is None else str(weight_field),
        weight_invert=bool(cfg.sample.weight_invert),
        weight_default=float(cfg.sample.weight_default),
        seed=None if seed is None else int(seed),
        merge_partitions=int(cfg.execution.merge_partitions),
        show_progress=bool(cfg.execution.show_progress),
    )


def run_sample(cfg: DictConfig) -> SampleResult:
    """Execute one sampling job with the current Hydra config."""
    # Validate options before touching any input.
    config = sample_config_from_cfg(cfg)
    config.validate()

    schema = None
    if cfg.input.header_file is not None:
        schema = read_header_file(str(cfg.input.header_file))
    records = read_csv_records(
        str(cfg.input.path),
        schema=schema,
        has_header=bool(cfg.input.has_header),
        chunksize=int(cfg.input.chunksize),
        delimiter=str(cfg.input.delimiter),
    )
    sink = CsvSink(str(cfg.output.path), delimiter=str(cfg.output.delimiter))

    num_workers = int(cfg.execution.num_workers)
    if num_workers > 1:
        with ProcessPoolExecutor(max_workers=num_workers) as executor:
            return sample_records(records, config, sink=sink, executor=executor)
    return sample_records(records, config, sink=sink)


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig) -> None:
    """Samples from a dataset and writes the sampled data to a local file."""
    load_dotenv()
    logger.info(f"Config:\n{OmegaConf.to_yaml(cfg)}")
    run_sample(cfg)


if __name__ == "__main__":
    main()
