import click

from blindclock.services.timer import HttpTimerStore, TimerStoreError, TournamentClock


def _describe(view):
    if not view.available:
        return f"[{view.status}] timer not available"
    level = view.level
    if level is None:
        what = '-'
    elif level.is_break:
        what = 'BREAK'
    else:
        what = f"{level.small_blind}/{level.big_blind}"
        if level.big_blind_ante:
            what += f" ante {level.big_blind_ante}"
    flags = 'paused' if view.paused else ('running' if view.running else 'stopped')
    return f"[{view.status}] level {view.level_index + 1} {what} {view.formatted} ({flags}, {view.role.value})"


@click.command('watch-clock')
@click.argument('game_code')
@click.option('--base-url', default=None, help='Game store URL (defaults to CLOCK_API_BASE).')
@click.option('--username', default=None, help='Log in first; the game creator drives the clock.')
@click.option('--password', default=None)
@click.option('--seconds', type=int, default=0, help='Stop after this many ticks (0 runs until interrupted).')
def watch_clock_command(game_code, base_url, username, password, seconds):
    """Follow a game's blind clock from the terminal."""
    store = HttpTimerStore(base_url)
    if username:
        try:
            store.login(username, password or '')
        except TimerStoreError as exc:
            raise click.ClickException(f'Login failed: {exc}')

    clock = TournamentClock(store, game_code.upper(), identity=username)
    ticks = {'n': 0}

    def on_tick(view):
        ticks['n'] += 1
        click.echo(_describe(view))

    try:
        clock.run(should_stop=lambda: bool(seconds) and ticks['n'] >= seconds, on_tick=on_tick)
    except KeyboardInterrupt:
        click.echo('stopped')
