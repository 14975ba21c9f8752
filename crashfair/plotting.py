import matplotlib.pyplot as plt
import numpy as np

from .config import DEFAULT_CONFIG
from .survival import theoretical_survival


def plot_survival(emp, fits=(), config=DEFAULT_CONFIG, path=None):
    t = emp["t"]
    S = emp["S"]
    fig = plt.figure(figsize=(7,5))
    plt.step(t, S, where='post', label='Empirical S(x)')
    grid_t = np.geomspace(config.min_multiplier, max(t.max(), config.min_multiplier * 2), 300)
    plt.plot(grid_t, theoretical_survival(grid_t, config), '--', label='Clamped crash curve')
    for f in fits:
        plt.plot(grid_t, f["survival"](grid_t), label=f["name"])
    plt.xscale('log')
    plt.yscale('log')
    plt.xlabel('x')
    plt.ylabel('S(x)=P(X>=x)')
    plt.title(f'Crash multiplier survival ({config.version})')
    plt.legend()
    plt.tight_layout()
    if path:
        fig.savefig(path)
        plt.close(fig)
    else:
        plt.show()
    return fig
