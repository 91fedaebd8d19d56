import numpy as np
import pandas as pd

# Couriers are scattered around the city centre; roughly 0.3 degrees either way
# puts a share of them beyond the 5 km primary ring but inside the 20 km fallback.
CENTER_LAT = -17.824858
CENTER_LON = 31.053028


def generate_mock_couriers(count=100, spread_deg=0.15, output_file="mock_couriers.csv", seed=None):
    """
    Writes a CSV of couriers with a last known position.
    Columns: courier_id, name, email, phone, lat, lon
    """
    rng = np.random.default_rng(seed)

    lat = CENTER_LAT + rng.uniform(-spread_deg, spread_deg, size=count)
    lon = CENTER_LON + rng.uniform(-spread_deg, spread_deg, size=count)

    df = pd.DataFrame({
        "courier_id": [f"CR-{str(i + 1).zfill(3)}" for i in range(count)],
        "name": [f"Courier {i + 1}" for i in range(count)],
        "email": [f"courier{i + 1}@example.com" for i in range(count)],
        "phone": [f"+9100000{str(i + 1).zfill(5)}" for i in range(count)],
        "lat": np.round(lat, 6),
        "lon": np.round(lon, 6),
    })
    df.to_csv(output_file, index=False)
    print(f"Generated {count} couriers and saved to '{output_file}'")
    return df


if __name__ == "__main__":
    generate_mock_couriers()
