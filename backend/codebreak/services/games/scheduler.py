from codebreak import socketio
from codebreak.realtime import emit_update_game


def schedule_seat_expiry(app, lobby, token: str, instance: int) -> None:
    """Release a held seat after the reconnect grace period.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Timers are never cancelled; a reconnect bumps the instance number and
      the expiry then finds nothing to do
    - The expiry runs under the lobby lock like any viewer action
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return

    delay = float(app.config.get('RECONNECT_GRACE_SEC', 1200))
    app.logger.info(f"[grace-set] instance={instance} delay={delay}s")

    def _worker(tok: str, expected_instance: int, wait: float):
        socketio.sleep(wait)
        with app.app_context():
            with lobby.lock:
                try:
                    room_code = lobby.continuity.expire(tok, expected_instance)
                    if room_code is None:
                        app.logger.info(f"[grace-abort] instance={expected_instance} superseded")
                        return
                    lobby.prune_room(room_code)
                    emit_update_game(lobby, room_code)
                except Exception:
                    app.logger.exception(f"[grace-error] instance={expected_instance}")

    socketio.start_background_task(_worker, token, instance, delay)
