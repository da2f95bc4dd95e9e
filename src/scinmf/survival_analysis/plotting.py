"""
Dot heatmap of univariate Cox regression results
"""

import logging
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.colors import LinearSegmentedColormap, Normalize, to_hex

from scinmf.config import CONFIG

logger = logging.getLogger(__name__)

PLOT = CONFIG['plot']


def hr_upper_limit(hr, quantile=0.8, lower=2.0, upper=4.0):
    """
    Upper limit of the hazard ratio color scale.

    Takes the hazard ratio ranked at 80% of the sorted values and keeps it
    within [lower, upper], so the scale always spans at least 0-2 and at most 0-4.
    """
    hr = np.asarray(hr, dtype=float)
    hr = np.sort(hr[~np.isnan(hr)])
    if len(hr) == 0:
        return float(upper)
    idx = max(int(round(quantile * len(hr))), 1) - 1
    return float(min(max(hr[idx], lower), upper))


def hr_colormap(lim_up, palette=PLOT['palette']):
    """
    Diverging colormap over [0, lim_up].

    The five low colors of the 11-color palette cover HR 0-1, the six high
    colors are interpolated to 5 colors per HR unit above 1. `palette` is a
    list of colors from low to high HR or a seaborn palette name.
    """
    colors = sns.color_palette(palette, 11).as_hex()
    low = colors[:5]
    n_cut = int(np.ceil(5 * (lim_up - 1)))
    ramp = LinearSegmentedColormap.from_list('hr_high', colors[5:])
    high = [to_hex(ramp(x)) for x in np.linspace(0, 1, n_cut)]
    return LinearSegmentedColormap.from_list('hazard_ratio', low + high)


def clip_hazard_ratio(df, lim_up):
    """Keep the fitted HR in TrueHR and cap HR at lim_up for display"""
    df = df.copy()
    df['TrueHR'] = df['HR']
    df['HR'] = df['HR'].clip(upper=lim_up)
    return df


def _marker_sizes(cindex, smallest=30, largest=300):
    cindex = np.asarray(cindex, dtype=float)
    lo, hi = np.nanmin(cindex), np.nanmax(cindex)
    if not np.isfinite(lo) or hi == lo:
        return np.full(len(cindex), (smallest + largest) / 2)
    return smallest + (cindex - lo) / (hi - lo) * (largest - smallest)


def plot_mp_coxph(df, xlab=PLOT['xlab'], ylab=PLOT['ylab'], title=PLOT['title'],
                  color_asterisks=PLOT['color_asterisks'], palette=PLOT['palette']):
    """
    Plot Cox regression results as a grid of points.

    Args:
        df (DataFrame): Result table of mp_coxph with Group, Signature, Cindex,
            HR and Significance columns
        xlab, ylab, title (str): Axis labels and plot title
        color_asterisks (str): Color of the significance marks

    Returns:
        matplotlib.figure.Figure: Color encodes the (capped) hazard ratio, point
        size the concordance index and the text the significance level
    """
    lim_up = hr_upper_limit(df['HR'])
    cmap = hr_colormap(lim_up, palette=palette)
    df = clip_hazard_ratio(df, lim_up)

    signatures = sorted(df['Signature'].unique())
    groups = sorted(df['Group'].unique())
    x = df['Signature'].map({sig: i for i, sig in enumerate(signatures)}).values
    y = df['Group'].map({group: i for i, group in enumerate(groups)}).values
    sizes = _marker_sizes(df['Cindex'])

    fig, ax = plt.subplots(figsize=(max(4, 0.5 * len(signatures) + 3), max(3, 0.5 * len(groups) + 2)))
    points = ax.scatter(
        x, y, c=df['HR'].values, s=sizes, cmap=cmap,
        norm=Normalize(vmin=0, vmax=lim_up), edgecolors='none', zorder=2
    )
    for xi, yi, label in zip(x, y, df['Significance']):
        if label:
            ax.text(xi, yi, label, ha='center', va='center', color=color_asterisks,
                    fontweight='bold', fontsize=8, zorder=3)

    ax.set_xticks(range(len(signatures)))
    ax.set_xticklabels(signatures, rotation=90)
    ax.set_yticks(range(len(groups)))
    ax.set_yticklabels(groups)
    ax.set_xlim(-0.6, len(signatures) - 0.4)
    ax.set_ylim(-0.6, len(groups) - 0.4)
    ax.grid(True, color='lightgrey', linewidth=0.5, zorder=0)
    ax.set_axisbelow(True)
    ax.set_xlabel(xlab)
    ax.set_ylabel(ylab)
    ax.set_title(title, loc='center')

    cbar = fig.colorbar(points, ax=ax)
    cbar.set_label('HR')

    # C-index legend
    cindex = df['Cindex'].dropna()
    if len(cindex) > 0:
        levels = np.unique(np.round(np.linspace(cindex.min(), cindex.max(), 3), 2))
        level_sizes = _marker_sizes(np.concatenate([cindex.values, levels]))[len(cindex):]
        handles = [
            ax.scatter([], [], s=s, color='grey', edgecolors='none')
            for s in level_sizes
        ]
        ax.legend(handles, [f"{level:.2f}" for level in levels], title='Cindex',
                  loc='upper left', bbox_to_anchor=(1.25, 1), frameon=False)

    fig.tight_layout()
    logger.debug(f"Plotted {len(df)} Cox regression results with HR limit {lim_up}")
    return fig
