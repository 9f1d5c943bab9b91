# mea_ds/run.py
"""Provides the main `run` function, the primary entry point for the library.

This module orchestrates a whole recording batch: configuration and design
validation, trial-window extraction, condition indexing, per-channel
parsing and tuning analysis, and optional persistence of the results. All
fatal checks happen before any channel is processed.
"""
from contextlib import nullcontext
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .analysis.pipeline import ChannelPipeline
from .analysis.tuning import TuningAnalyzer
from .config import PipelineConfig, load_config
from .data.conditions import ConditionAxes, ConditionIndex
from .data.models import Recording, SpikeChannel, StimulusDesign, TrialSequence, TrialWindow
from .data.parser import ConditionParser
from .data.sync import SyncExtractor
from .logger import logger, verbosity
from .results import Results
from .validation import ConfigValidator, DesignValidator, RecordingValidator, validate_windows

def _check_declared_axes(design: StimulusDesign, index: ConditionIndex):
    """Logs where the realized trials deviate from the declared design."""
    axes = index.axes
    undeclared = sorted(set(axes.directions.tolist()) - set(design.directions))
    if design.directions and undeclared:
        logger.warning(f"Trials use directions {undeclared} that are not in the declared design.")
    undeclared = sorted(set(axes.speeds.tolist()) - set(design.speeds))
    if design.speeds and undeclared:
        logger.warning(f"Trials use speeds {undeclared} that are not in the declared design.")
    counts = index.trial_counts()
    presented = counts[counts > 0]
    if presented.size and np.any(presented != design.repeats):
        logger.warning(
            f"Conditions were presented between {presented.min()} and {presented.max()} times, "
            f"but rates are normalized by the declared {design.repeats} repeats."
        )

def run(
    recording: Recording,
    design: StimulusDesign,
    trials: TrialSequence,
    config: Optional[PipelineConfig] = None,
    sync_channels: Optional[Tuple[SpikeChannel, SpikeChannel]] = None,
    windows: Optional[Sequence[TrialWindow]] = None,
    axes: Optional[ConditionAxes] = None,
    n_workers: Optional[int] = None,
    show_progress: Optional[bool] = None,
    verbose: Optional[bool] = None,
    output_path: Optional[Union[str, Path]] = None,
) -> Results:
    """Parses and analyzes every channel of one recording.

    Parameters
    ----------
    recording : Recording
        The imported channels. Unless `sync_channels` or `windows` is given,
        the two channels at ``config.sync.analog_channels`` are taken as the
        onset and offset pulse channels and removed before analysis.
    design : StimulusDesign
        The declared stimulus design.
    trials : TrialSequence
        The realized trial sequence.
    config : PipelineConfig, optional
        Thresholds and options. Defaults to `PipelineConfig()`.
    sync_channels : Tuple[SpikeChannel, SpikeChannel], optional
        Explicit onset and offset pulse channels. When given, `recording` is
        assumed to hold only neural channels.
    windows : Sequence[TrialWindow], optional
        Pre-computed trial windows. When given, no sync extraction is done
        and `recording` is assumed to hold only neural channels.
    axes : ConditionAxes, optional
        Externally supplied condition axes. Defaults to the axes observed in
        `trials`.
    n_workers : int, optional
        Overrides ``config.n_workers``.
    show_progress : bool, optional
        Overrides ``config.show_progress``.
    verbose : bool, optional
        Overrides ``config.verbose``. If False, only warnings are logged.
    output_path : str or Path, optional
        If given, the results are saved there with `save_results`.

    Returns
    -------
    Results
        Spike tables and tuning summaries for every neural channel.

    Raises
    ------
    ConfigurationError
        For invalid thresholds, indices, duration or repeat count.
    DesignInconsistencyError
        If the trial sequence is internally inconsistent.
    AlignmentError
        If the trial windows do not match the trials one-to-one.

    Examples
    --------
    >>> import mea_ds
    >>> exp = mea_ds.datasets.generate_recording(seed=0)
    >>> config = mea_ds.PipelineConfig(sync=exp.sync_config)
    >>> results = mea_ds.run(exp.recording, exp.design, exp.trials, config=config)
    >>> results.dataframe[['channel', 'label', 'mean_dsi']].head()
    """
    config = config if config is not None else PipelineConfig()
    n_workers = n_workers if n_workers is not None else config.n_workers
    show_progress = show_progress if show_progress is not None else config.show_progress
    verbose = verbose if verbose is not None else config.verbose
    with (verbosity('WARNING') if not verbose else nullcontext()):
        return _run_batch(recording, design, trials, config, sync_channels, windows, axes,
                          n_workers, show_progress, output_path)

def _run_batch(recording, design, trials, config, sync_channels, windows, axes,
               n_workers, show_progress, output_path) -> Results:
    ConfigValidator(config.analysis, config.sync).validate()
    DesignValidator(design, trials).validate()

    if windows is not None:
        validate_windows(windows, len(trials))
        windows = [TrialWindow(*w) for w in windows]
    else:
        if sync_channels is not None:
            sync_a, sync_b = sync_channels
        else:
            sync_a, sync_b, recording = recording.split_sync(config.sync.analog_channels)
            logger.debug(f"Using '{sync_a.channel_id}' and '{sync_b.channel_id}' as sync channels.")
        windows = SyncExtractor(config.sync).extract(sync_a, sync_b, n_trials=len(trials))
    logger.info(f"Aligned {len(windows)} trial windows to {len(trials)} trials.")

    RecordingValidator(recording).validate()
    index = ConditionIndex(trials, axes)
    _check_declared_axes(design, index)
    parser = ConditionParser(design, windows, index)
    analyzer = TuningAnalyzer(design, index.axes, config.analysis)
    logger.info(f"Condition grid (directions x speeds x wavelengths): {index.axes.shape}.")

    outputs = ChannelPipeline(parser, analyzer).run(recording.channels, n_workers=n_workers,
                                                    show_progress=show_progress)
    results = Results(
        design=design, axes=index.axes, windows=list(windows),
        spike_tables={table.channel_id: table for table, _ in outputs},
        summaries={summary.channel_id: summary for _, summary in outputs},
        coordinates={ch.channel_id: ch.coordinate for ch in recording},
        config=config,
    )
    logger.info(f"{len(results.ds_channels)} of {len(results)} channels classified as direction selective.")

    if output_path is not None:
        from .io.store import save_results
        save_results(results, output_path)
    return results

def run_from_files(
    spike_path: Union[str, Path],
    stimulus_path: Union[str, Path],
    config_path: Optional[Union[str, Path]] = None,
    output_path: Optional[Union[str, Path]] = None,
    **kwargs
) -> Results:
    """Loads a recording, its stimulus log and a configuration, then calls `run`.

    Parameters
    ----------
    spike_path : str or Path
        Spike timestamp export, read with `read_spike_export`.
    stimulus_path : str or Path
        Stimulus log, read with `read_stimulus_log`.
    config_path : str or Path, optional
        JSON configuration read with `load_config`. Defaults to
        `PipelineConfig()`.
    output_path : str or Path, optional
        Where to save the results. Nothing is written if `run` fails.
    **kwargs
        Additional keyword arguments passed to `run`.
    """
    from .io.reader import read_spike_export
    from .io.stimulus import read_stimulus_log

    config = load_config(config_path) if config_path is not None else PipelineConfig()
    recording = read_spike_export(spike_path, apply_coordinate_transform=config.apply_coordinate_transform)
    design, trials = read_stimulus_log(stimulus_path)
    return run(recording, design, trials, config=config, output_path=output_path, **kwargs)
