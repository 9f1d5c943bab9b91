# mea_ds/analysis/pipeline.py
"""Runs the condition parser and tuning analyzer over many channels.

Channels share only read-only inputs (trial windows, condition index,
configuration), so they are processed as independent tasks, either
sequentially or in a pool of worker processes.
"""
import multiprocessing
from typing import List, Optional, Sequence, Tuple

from tqdm.auto import tqdm

from mea_ds.analysis.tuning import TuningAnalyzer, TuningSummary
from mea_ds.data.models import SpikeChannel
from mea_ds.data.parser import ConditionParser, ConditionSpikeTable
from mea_ds.logger import logger

ChannelResult = Tuple[ConditionSpikeTable, TuningSummary]

def process_channel(args: tuple) -> ChannelResult:
    """A top-level function that can be pickled for multiprocessing."""
    parser, analyzer, channel = args
    table = parser.parse(channel)
    return table, analyzer.analyze(table)

class ChannelPipeline:
    """Parses and analyzes every channel of a recording.

    Results are returned in the order of the input channels regardless of
    the number of workers.
    """
    def __init__(self, parser: ConditionParser, analyzer: TuningAnalyzer):
        """
        Parameters
        ----------
        parser : ConditionParser
            The parser holding the shared trial windows and condition index.
        analyzer : TuningAnalyzer
            The analyzer holding the design and classification thresholds.
        """
        if parser.axes != analyzer.axes:
            raise ValueError("Parser and analyzer were built for different condition axes.")
        self.parser, self.analyzer = parser, analyzer

    def _prepare_tasks(self, channels: Sequence[SpikeChannel]) -> List[tuple]:
        return [(self.parser, self.analyzer, channel) for channel in channels]

    def run(self, channels: Sequence[SpikeChannel], n_workers: Optional[int] = None,
            show_progress: bool = True) -> List[ChannelResult]:
        """Processes all channels.

        Parameters
        ----------
        channels : Sequence[SpikeChannel]
            The neural channels to process.
        n_workers : int, optional
            The number of worker processes. If None or 1, channels are
            processed sequentially.
        show_progress : bool, optional
            If True, a progress bar is displayed. Defaults to True.

        Returns
        -------
        List[Tuple[ConditionSpikeTable, TuningSummary]]
            One entry per channel, in input order.
        """
        tasks = self._prepare_tasks(channels)
        if not tasks:
            logger.warning("No channels to process.")
            return []

        effective_workers = n_workers if n_workers is not None else 1
        if effective_workers <= 1:
            logger.info(f"Processing {len(tasks)} channels sequentially...")
            results = [process_channel(task) for task in tqdm(tasks, desc="Channels", disable=not show_progress)]
        else:
            logger.info(f"Processing {len(tasks)} channels with {effective_workers} workers...")
            with multiprocessing.get_context("spawn").Pool(processes=effective_workers) as pool:
                results = list(tqdm(
                    pool.imap(process_channel, tasks), total=len(tasks),
                    desc="Channels", unit="channel", disable=not show_progress
                ))
        return results
