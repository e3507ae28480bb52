from launch import LaunchDescription
from launch_ros.actions import Node

def generate_launch_description():
    return LaunchDescription([
        Node(
            package='mpf_localizer',
            executable='predictor',
            name='predictor',
            output='screen',
            parameters=[
                # ---- Population / timing ----
                {'num_of_particles': 500},
                {'prediction_rate': 50.0},
                {'resampling_interval_seconds': 1.0},
                {'history_size': 100},

                # ---- Motion noise ----
                {'motion_noise_scale': 4.0},
                {'use_dynamic_noise': True},
                {'static_linear_covariance': 0.04},
                {'static_angular_covariance': 0.006},

                # ---- GNSS initialization ----
                {'gnss_initial_xy_covariance': 1.0},
                {'gnss_initial_yaw_covariance': 0.1},
            ],
            remappings=[
                ('twist_with_covariance', '/localization/twist_with_covariance'),
                ('initialpose', '/initialpose'),
                ('gnss_pose', '/sensing/gnss/pose'),
            ]
        ),
        Node(
            package='mpf_localizer',
            executable='gnss_particle_corrector',
            name='gnss_particle_corrector',
            output='screen',
            parameters=[
                {'likelihood_stdev': 5.0},
                {'float_range_gain': 5.0},
                {'likelihood_flat_radius': 1.0},
                {'likelihood_min_weight': 0.01},
                {'min_travel_distance': 1.0},
                {'rtk_enabled': True},
                {'fixed_covariance_threshold': 0.1},
                {'enabled_at_first': True},
                {'visualize': True},
            ],
            remappings=[
                ('predicted_particles', '/predicted_particles'),
                ('weighted_particles', '/weighted_particles'),
                ('height', '/height'),
                ('gnss/pose_with_covariance', '/sensing/gnss/pose_with_covariance'),
            ]
        ),
    ])
