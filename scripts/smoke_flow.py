#!/usr/bin/env python3
import json
import sys
from urllib import request, error

BASE_URL = "http://127.0.0.1:8000"


def api(method, path, body=None):
    url = BASE_URL + path
    data = None
    headers = {}
    if body is not None:
        data = json.dumps(body).encode("utf-8")
        headers["Content-Type"] = "application/json"
    req = request.Request(url, data=data, headers=headers, method=method)
    try:
        with request.urlopen(req, timeout=10) as resp:
            payload = resp.read().decode("utf-8")
            return resp.status, json.loads(payload) if payload else None
    except error.HTTPError as e:
        payload = e.read().decode("utf-8")
        try:
            return e.code, json.loads(payload)
        except ValueError:
            return e.code, {"detail": payload}
    except OSError as e:
        return 0, {"detail": str(e)}


def must_ok(status, data, label):
    if status < 200 or status >= 300:
        raise RuntimeError(f"{label} failed: {status} {data}")
    return data


def must_fail(status, data, label, expected_status):
    if status != expected_status:
        raise RuntimeError(f"{label}: expected {expected_status}, got {status} {data}")
    return data


def create_game(host_name, player_count, mafia_count):
    status, data = api(
        "POST",
        "/api/games",
        {"host_name": host_name, "player_count": player_count, "mafia_count": mafia_count},
    )
    return must_ok(status, data, "create_game")


def join(code, name):
    status, data = api("POST", f"/api/games/{code}/join", {"player_name": name})
    return status, data


def vote(code, voter_id, target_id):
    status, data = api(
        "POST",
        f"/api/games/{code}/votes",
        {"voter_id": voter_id, "target_id": target_id},
    )
    return must_ok(status, data, f"vote {voter_id}->{target_id}")


def post(code, action):
    status, data = api("POST", f"/api/games/{code}/{action}", {})
    return must_ok(status, data, action)


def case_round(player_count, mafia_count):
    created = create_game("Host", player_count, mafia_count)
    code = created["game"]["code"]
    print(f"[{code}] created players={player_count} mafia={mafia_count}")

    # 2人だけでは開始できない
    must_ok(*join(code, "P2"), "join P2")
    must_fail(*api("POST", f"/api/games/{code}/start", {}), "start with 2", 400)

    for i in range(3, player_count + 1):
        must_ok(*join(code, f"P{i}"), f"join P{i}")

    # 満員
    must_fail(*join(code, "Extra"), "join full", 400)

    game = post(code, "start")
    ids = [p["id"] for p in game["players"]]
    print(f"[{code}] started ids={ids}")

    post(code, "voting")
    for voter_id in ids:
        target_id = ids[0] if voter_id != ids[0] else ids[1]
        game = vote(code, voter_id, target_id)
    assert game["voting_complete"], game

    status, tally = api("GET", f"/api/games/{code}/tally")
    tally = must_ok(status, tally, "tally")
    print(f"[{code}] most voted: {[p['name'] for p in tally['most_voted']]}")

    revealed = post(code, "reveal")
    mafias = [p["name"] for p in revealed["players"] if p["is_mafia"]]
    expected = min(mafia_count, player_count // 2)
    if len(mafias) != expected:
        raise RuntimeError(f"expected {expected} mafia, got {mafias}")
    print(f"[{code}] words={revealed['normal_word']}/{revealed['mafia_word']} mafia={mafias}")

    reset = post(code, "reset")
    assert reset["status"] == "lobby", reset
    must_fail(*join(code, "Late"), "join after reset (full)", 400)


def main():
    for count in range(3, 21):
        print(f"\n######## players={count} ########")
        case_round(count, max(1, count // 2))

    print("\nALL OK")
    return 0


if __name__ == "__main__":
    sys.exit(main())
