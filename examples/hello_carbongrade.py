import time

import carbongrade


def main() -> None:
    # Grade updates count against the owner's weekly uploads, so allow a few.
    client = carbongrade.run(port=57793, config=carbongrade.MarketConfig(max_weekly_uploads=5))
    if isinstance(client, carbongrade.CarbonServer):
        client = client.client()

    client.register_user("greenco", "company")
    client.register_user("alice")

    token_id = client.mint_token("greenco", "ipfs://reforestation-2024", "Reforestation", "C", 640)
    client.endorse_token(token_id, "alice")
    client.update_grade(token_id, "A", 910, "ipfs://reforestation-2024-audited", caller="operator")

    client.create_listing(token_id, "greenco", 10**18)
    price = client.quote(token_id)
    print(f"token {token_id} lists at {price} (grade A)")

    settlement = client.purchase(token_id, "alice", price)
    print(
        f"sold to alice: seller gets {settlement['sellerProceeds']}, "
        f"fee {settlement['fee']}, royalty {settlement['royalty']}"
    )
    print(client.stats())

    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
