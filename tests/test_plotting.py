import numpy as np
import pandas as pd
import pytest
from matplotlib.colors import to_hex

from scinmf.survival_analysis import hr_upper_limit, hr_colormap, clip_hazard_ratio, plot_mp_coxph


@pytest.mark.parametrize("hr", [
    np.full(10, 0.3),
    np.linspace(0.1, 0.9, 25),
    np.full(10, 12.0),
    np.linspace(5, 50, 7),
    np.array([0.2, 0.8, 1.5, 2.5, 3.1, 7.0, 0.9, 1.1, 1.3, 2.2]),
    np.array([1.7]),
])
def test_hr_upper_limit_is_bounded(hr):
    lim = hr_upper_limit(hr)
    assert 2 <= lim <= 4


def test_hr_upper_limit_uses_80_percent_rank():
    hr = np.array([1.0, 2.5, 3.0, 3.5, 10.0])
    # round(0.8 * 5) = 4 -> fourth smallest
    assert hr_upper_limit(hr) == 3.5
    assert hr_upper_limit(hr[::-1]) == 3.5


def test_hr_upper_limit_ignores_missing():
    assert hr_upper_limit([np.nan, 3.0, np.nan]) == 3.0
    assert hr_upper_limit([]) == 4.0


def test_clip_hazard_ratio():
    df = pd.DataFrame({"HR": [0.5, 2.0, 3.0, 8.0]})
    clipped = clip_hazard_ratio(df, 2.5)
    assert list(clipped["TrueHR"]) == [0.5, 2.0, 3.0, 8.0]
    assert list(clipped["HR"]) == [0.5, 2.0, 2.5, 2.5]
    # input untouched
    assert list(df.columns) == ["HR"]


def test_hr_colormap_low_end_is_blue_high_end_is_red():
    cmap = hr_colormap(3.0)
    low = cmap(0.0)
    high = cmap(1.0)
    assert low[2] > low[0]
    assert high[0] > high[2]
    assert cmap.N == 256
    assert to_hex(cmap(0.0)) != to_hex(cmap(1.0))


def test_plot_mp_coxph_direct():
    import matplotlib.pyplot as plt
    df = pd.DataFrame({
        "Group": ["A_(n=20)", "A_(n=20)", "B_(n=18)", "B_(n=18)"],
        "Signature": ["MP2", "MP1", "MP1", "MP2"],
        "Cindex": [0.71, 0.65, 0.60, 0.55],
        "HR": [0.4, 9.0, 1.2, 2.1],
        "pvalue": [0.001, 0.0001, 0.2, 0.04],
        "Significance": ["***", "****", "", "*"],
    })
    fig = plot_mp_coxph(df)
    ax = fig.axes[0]
    assert [t.get_text() for t in ax.get_yticklabels()] == ["A_(n=20)", "B_(n=18)"]
    assert sorted(t.get_text() for t in ax.texts) == ["*", "***", "****"]
    plt.close(fig)


def test_hr_colormap_spans_the_brewer_extremes():
    cmap = hr_colormap(4.0)
    assert to_hex(cmap(0.0)) == "#313695"
    assert to_hex(cmap(1.0)) == "#a50026"
